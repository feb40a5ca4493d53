"""Token-budget-aware batching in front of the embedding service."""
import math
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from services.embedding_model import EmbeddingError, EmbeddingServiceError
from services.rate_limiter import FixedDelayPolicy
from config import MAX_TOKENS_PER_BATCH, CHARS_PER_TOKEN

logger = logging.getLogger(__name__)


class EmbeddingClient(Protocol):
    def embed_batch(self, texts: List[str]) -> List[List[float]]: ...


class SchedulingPolicy(Protocol):
    def wait(self, batch_tokens: int, is_last: bool) -> None: ...


def estimate_tokens(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass
class Batch:
    """Texts sent in one embedding request."""
    texts: List[str]
    offset: int  # global position of texts[0]
    estimated_tokens: int


def plan_batches(texts: List[str], max_tokens: int = MAX_TOKENS_PER_BATCH) -> List[Batch]:
    """
    Greedily group texts into batches under a token ceiling.
    
    A text is appended to the running batch unless that would push the
    estimate past ``max_tokens`` and the batch already holds something. A
    text over the ceiling on its own still gets a batch to itself.
    
    Args:
        texts: Texts in input order
        max_tokens: Estimated-token ceiling per batch
        
    Returns:
        Batches whose concatenation reproduces ``texts`` exactly
    """
    if max_tokens <= 0:
        raise ValueError("max_tokens must be positive")
    
    batches: List[Batch] = []
    current: List[str] = []
    current_tokens = 0
    offset = 0
    
    for text in texts:
        text_tokens = estimate_tokens(text)
        
        if current_tokens + text_tokens > max_tokens and current:
            batches.append(Batch(texts=current, offset=offset, estimated_tokens=current_tokens))
            offset += len(current)
            current = [text]
            current_tokens = text_tokens
        else:
            current.append(text)
            current_tokens += text_tokens
    
    if current:
        batches.append(Batch(texts=current, offset=offset, estimated_tokens=current_tokens))
    
    return batches


class EmbeddingBatchError(EmbeddingServiceError):
    """A batch failed, aborting the whole embed_many call."""
    
    def __init__(self, batch_number: int, total_batches: int, cause: EmbeddingError):
        self.batch_number = batch_number
        self.total_batches = total_batches
        self.cause = cause
        super().__init__(EmbeddingError(
            code=cause.code,
            message=(
                f"Failed to generate embeddings for batch {batch_number}/{total_batches}: "
                f"{cause.message}"
            ),
            details={**cause.details, "batch_number": batch_number}
        ))


class EmbeddingBatcher:
    """Embeds arbitrarily many texts while respecting the service token ceiling."""
    
    def __init__(
        self,
        embedding_model: EmbeddingClient,
        max_tokens_per_batch: int = MAX_TOKENS_PER_BATCH,
        scheduler: Optional[SchedulingPolicy] = None
    ):
        """
        Initialize the batcher.
        
        Args:
            embedding_model: Client exposing ``embed_batch``
            max_tokens_per_batch: Estimated-token ceiling per request
            scheduler: Policy applied between batches (default: 100ms fixed delay)
        """
        if max_tokens_per_batch <= 0:
            raise ValueError("max_tokens_per_batch must be positive")
        
        self.embedding_model = embedding_model
        self.max_tokens_per_batch = max_tokens_per_batch
        self.scheduler = scheduler if scheduler is not None else FixedDelayPolicy()
    
    def embed_one(self, text: str) -> List[float]:
        """Embed a single text."""
        return self.embed_many([text])[0]
    
    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts batch by batch, strictly in sequence.
        
        Args:
            texts: Texts to embed
            
        Returns:
            One vector per input text, in input order
            
        Raises:
            EmbeddingBatchError: If any batch fails; no partial result is returned
        """
        if not texts:
            return []
        
        batches = plan_batches(texts, self.max_tokens_per_batch)
        embeddings: List[List[float]] = []
        
        for number, batch in enumerate(batches, start=1):
            logger.info(
                f"Processing embedding batch {number}/{len(batches)} "
                f"({len(batch.texts)} texts, ~{batch.estimated_tokens} tokens)",
                extra={
                    "batch_index": number,
                    "batch_size": len(batch.texts),
                    "estimated_tokens": batch.estimated_tokens,
                }
            )
            
            try:
                batch_embeddings = self.embedding_model.embed_batch(batch.texts)
            except EmbeddingServiceError as e:
                logger.error(f"Error processing batch {number}: {e}")
                raise EmbeddingBatchError(number, len(batches), e.error) from e
            except ValueError as e:
                logger.error(f"Error processing batch {number}: {e}")
                raise EmbeddingBatchError(
                    number, len(batches), EmbeddingError(code="invalid_request", message=str(e))
                ) from e
            except Exception as e:
                logger.error(f"Error processing batch {number}: {e}")
                raise EmbeddingBatchError(
                    number, len(batches), EmbeddingError(code="service_unavailable", message=str(e))
                ) from e
            
            if len(batch_embeddings) != len(batch.texts):
                raise EmbeddingBatchError(number, len(batches), EmbeddingError(
                    code="invalid_response",
                    message=f"Expected {len(batch.texts)} embeddings, received {len(batch_embeddings)}"
                ))
            
            embeddings.extend(batch_embeddings)
            self.scheduler.wait(batch.estimated_tokens, is_last=number == len(batches))
        
        return embeddings
