"""Ingestion: segment a document, embed its chunks and store both."""
import logging
from typing import List, Optional

from models.document import Document, IngestionResult
from services.chunking_engine import ChunkingEngine
from services.embedding_batcher import EmbeddingBatcher
from services.embedding_model import EmbeddingServiceError
from services.vector_store import StoreError

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Ingestion failure carrying a message that is safe to show to end users."""
    
    def __init__(self, code: str, message: str, filename: Optional[str] = None):
        self.code = code  # empty_document, embedding_failed, storage_failed, processing_failed
        self.message = message
        self.filename = filename
        super().__init__(message)


class IngestionPipeline:
    """Turns a loaded document into stored, embedded chunks."""
    
    def __init__(self, chunking_engine: ChunkingEngine, embedder: EmbeddingBatcher, store):
        """
        Args:
            chunking_engine: Segmenter
            embedder: Batcher used for chunk embeddings
            store: VectorStore or InMemoryChunkStore
        """
        self.chunking_engine = chunking_engine
        self.embedder = embedder
        self.store = store
    
    def ingest(self, document: Document) -> IngestionResult:
        """
        Ingest one document.
        
        The document row is removed again if embedding or chunk insertion
        fails, so no document is left without its chunks.
        
        Raises:
            IngestionError: With a summarized message and a failure code
        """
        chunks = self.chunking_engine.segment(document.text)
        if not chunks:
            raise IngestionError("empty_document", "No content to process", document.filename)
        logger.info(f"Created {len(chunks)} chunks for {document.filename}")
        
        try:
            document_id = self.store.create_document(document)
        except StoreError as e:
            logger.error(f"Could not create document {document.filename}: {e}")
            raise IngestionError(
                "storage_failed", "Failed to save document", document.filename
            ) from e
        document.document_id = document_id
        
        try:
            embeddings = self.embedder.embed_many([chunk.content for chunk in chunks])
            self.store.add_chunks(document_id, chunks, embeddings)
        except EmbeddingServiceError as e:
            self._rollback(document_id)
            raise IngestionError(
                "embedding_failed", self._summarize_embedding_error(e), document.filename
            ) from e
        except StoreError as e:
            self._rollback(document_id)
            raise IngestionError(
                "storage_failed", "Failed to process document chunks", document.filename
            ) from e
        except Exception as e:
            logger.error(f"Unexpected error ingesting {document.filename}: {e}")
            self._rollback(document_id)
            raise IngestionError(
                "processing_failed", "Failed to process document", document.filename
            ) from e

        logger.info(f"Ingested {document.filename} as {document_id} ({len(chunks)} chunks)")
        return IngestionResult(
            document_id=document_id,
            filename=document.filename,
            chunk_count=len(chunks)
        )
    
    def ingest_all(self, documents: List[Document]) -> List[IngestionResult]:
        """Ingest documents in order, stopping at the first failure."""
        return [self.ingest(document) for document in documents]
    
    def _rollback(self, document_id: str) -> None:
        try:
            self.store.delete_document(document_id)
        except StoreError as e:
            logger.error(f"Rollback of document {document_id} failed: {e}")
    
    @staticmethod
    def _summarize_embedding_error(error: EmbeddingServiceError) -> str:
        summaries = {
            "invalid_request": "The embedding service rejected the document content",
            "authentication_failed": "The embedding service rejected the configured credentials",
            "rate_limited": "The embedding service is rate limiting requests, try again later",
            "service_unavailable": "The embedding service is unreachable, try again later",
            "invalid_response": "The embedding service returned an unexpected response",
        }
        summary = summaries.get(error.code, "Failed to generate embeddings")
        batch_number = error.error.details.get("batch_number")
        if batch_number is not None:
            summary = f"{summary} (batch {batch_number})"
        return summary
