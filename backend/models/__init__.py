"""Data models for the document retrieval backend."""
from .chunk import Chunk, RetrievedChunk
from .document import Document, IngestionResult
from .records import VectorMatch, KeywordMatch, EmbeddingItem, EmbeddingResponse

__all__ = [
    "Chunk",
    "RetrievedChunk",
    "Document",
    "IngestionResult",
    "VectorMatch",
    "KeywordMatch",
    "EmbeddingItem",
    "EmbeddingResponse",
]
