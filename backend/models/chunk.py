"""Chunk data models."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Chunk:
    """A segment of normalized document text, tagged with its position."""
    content: str
    index: int  # contiguous, in order of production


@dataclass(frozen=True)
class RetrievedChunk:
    """Chunk returned by retrieval for one query."""
    id: str
    document_id: str
    content: str
    similarity: float  # graded on the vector path, flat on the keyword path
