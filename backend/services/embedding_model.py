"""Embedding service client for the OpenAI-compatible embeddings API."""
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from models.records import EmbeddingResponse
from config import OPENAI_API_KEY, EMBEDDING_MODEL, EMBEDDING_API_URL

logger = logging.getLogger(__name__)

# Status codes worth retrying with backoff
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass
class EmbeddingError:
    """Structured error from embedding operations."""
    code: str  # invalid_request, authentication_failed, rate_limited, service_unavailable, invalid_response
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class EmbeddingServiceError(Exception):
    """Raised when the embedding service cannot produce vectors."""
    
    def __init__(self, error: EmbeddingError):
        self.error = error
        super().__init__(error.message)
    
    @property
    def code(self) -> str:
        return self.error.code


class EmbeddingModel:
    """Client for the remote embedding service."""
    
    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        api_url: str = EMBEDDING_API_URL,
        max_retries: int = 5,
        initial_delay: float = 1.0,
        timeout: float = 60.0
    ):
        """
        Initialize the embedding model client.
        
        Args:
            api_key: Embedding service API key
            model_name: Model identifier (default: text-embedding-3-small)
            api_url: Embeddings endpoint URL
            max_retries: Maximum number of attempts for retryable failures
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("OPENAI_API_KEY environment variable is required")
        
        self.api_key = api_key
        self.model_name = model_name
        self.api_url = api_url
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        
        logger.info(f"Initialized EmbeddingModel with model: {model_name}")
    
    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.
        
        Args:
            text: Text to embed
            
        Returns:
            Embedding vector as list of floats
            
        Raises:
            ValueError: If text is empty
            EmbeddingServiceError: If the service fails after all retries
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")
        
        return self._embed_with_retry([text])[0]
    
    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in a single API call.
        
        Empty strings are rejected rather than dropped: callers zip the
        result back onto their inputs by position.
        
        Args:
            texts: List of texts to embed
            
        Returns:
            List of embedding vectors, one per input text, in input order
            
        Raises:
            ValueError: If texts list is empty or contains empty strings
            EmbeddingServiceError: If the service fails after all retries
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")
        
        empty_positions = [i for i, t in enumerate(texts) if not t or not t.strip()]
        if empty_positions:
            raise ValueError(f"Texts at positions {empty_positions} are empty")
        
        return self._embed_with_retry(list(texts))
    
    def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Call the embeddings endpoint with exponential backoff.
        
        Rate limits, server errors, timeouts and network errors are retried;
        authentication and request errors fail immediately.
        
        Args:
            texts: List of texts to embed
            
        Returns:
            List of embedding vectors
            
        Raises:
            EmbeddingServiceError: If the request fails or the payload is malformed
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        
        payload = {
            "model": self.model_name,
            "input": texts
        }
        
        delay = self.initial_delay
        last_error: Optional[EmbeddingError] = None
        
        for attempt in range(self.max_retries):
            try:
                start_time = time.time()
                
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.api_url,
                        headers=headers,
                        json=payload
                    )
                
                elapsed = time.time() - start_time
                
                if response.status_code in RETRYABLE_STATUS_CODES:
                    code = "rate_limited" if response.status_code == 429 else "service_unavailable"
                    last_error = EmbeddingError(
                        code=code,
                        message=f"Embedding service returned {response.status_code}",
                        details={"status_code": response.status_code, "attempts": attempt + 1}
                    )
                    logger.warning(
                        f"Embedding request failed with {response.status_code} on attempt "
                        f"{attempt + 1}/{self.max_retries}. Retrying in {delay}s..."
                    )
                    if attempt < self.max_retries - 1:
                        time.sleep(delay)
                        delay = min(delay * 2, 60.0)  # Exponential backoff, max 60s
                    continue
                
                if response.status_code in (401, 403):
                    logger.error("Authentication failed for embedding service")
                    raise EmbeddingServiceError(EmbeddingError(
                        code="authentication_failed",
                        message="Invalid API key",
                        details={"status_code": response.status_code}
                    ))
                
                if response.status_code != 200:
                    error_msg = f"Embedding request rejected with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingServiceError(EmbeddingError(
                        code="invalid_request",
                        message=error_msg,
                        details={"status_code": response.status_code}
                    ))
                
                embeddings = self._parse_response(response, expected=len(texts))
                logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")
                return embeddings
                
            except httpx.TimeoutException:
                last_error = EmbeddingError(
                    code="service_unavailable",
                    message=f"Request timeout after {self.timeout}s",
                    details={"attempts": attempt + 1}
                )
            except httpx.RequestError as e:
                last_error = EmbeddingError(
                    code="service_unavailable",
                    message=f"Network error: {str(e)}",
                    details={"attempts": attempt + 1}
                )
            
            logger.error(f"{last_error.message} on attempt {attempt + 1}/{self.max_retries}")
            if attempt < self.max_retries - 1:
                time.sleep(delay)
                delay = min(delay * 2, 60.0)
        
        # All retries exhausted
        if last_error is None:
            last_error = EmbeddingError(code="service_unavailable", message="No attempts were made")
        error_msg = (
            f"Failed to generate embeddings after {self.max_retries} attempts. "
            f"Last error: {last_error.message}"
        )
        logger.error(error_msg)
        raise EmbeddingServiceError(EmbeddingError(
            code=last_error.code,
            message=error_msg,
            details=last_error.details
        ))
    
    def _parse_response(self, response: httpx.Response, expected: int) -> List[List[float]]:
        """Validate the payload and return vectors in input order."""
        try:
            parsed = EmbeddingResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise EmbeddingServiceError(EmbeddingError(
                code="invalid_response",
                message=f"Malformed embedding response: {str(e)}"
            )) from e
        
        embeddings = parsed.ordered_vectors()
        if len(embeddings) != expected:
            raise EmbeddingServiceError(EmbeddingError(
                code="invalid_response",
                message=f"Expected {expected} embeddings, received {len(embeddings)}",
                details={"expected": expected, "received": len(embeddings)}
            ))
        return embeddings
    
    def warmup(self) -> bool:
        """
        Send a dummy query so the first real request does not pay connection setup.
        
        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()
            
            self.embed_text("warmup query")
            
            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True
            
        except EmbeddingServiceError as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
