"""
Boundary records for collaborator responses.

Rows coming back from the embedding service and the Supabase adapters are
validated here before they reach the retrieval core, so a malformed response
fails at the edge instead of surfacing later as a missing attribute.
"""
from typing import List

from pydantic import BaseModel, Field, field_validator

from models.chunk import RetrievedChunk


class VectorMatch(BaseModel):
    """Row returned by the ``match_document_chunks`` similarity function."""

    id: str = Field(description="Chunk identifier")
    document_id: str = Field(description="Parent document identifier")
    content: str = Field(description="Chunk text content")
    similarity: float = Field(description="1 - cosine distance to the query")

    @field_validator("id", "document_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value):
        # UUID columns come back as strings, local stores may use ints
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_retrieved(self) -> RetrievedChunk:
        return RetrievedChunk(
            id=self.id,
            document_id=self.document_id,
            content=self.content,
            similarity=self.similarity,
        )


class KeywordMatch(BaseModel):
    """Row returned by a keyword search; carries no graded score."""

    id: str = Field(description="Chunk identifier")
    document_id: str = Field(description="Parent document identifier")
    content: str = Field(description="Chunk text content")

    @field_validator("id", "document_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value):
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_retrieved(self, similarity: float) -> RetrievedChunk:
        return RetrievedChunk(
            id=self.id,
            document_id=self.document_id,
            content=self.content,
            similarity=similarity,
        )


class EmbeddingItem(BaseModel):
    """One vector from the embeddings endpoint."""

    index: int = Field(ge=0)
    embedding: List[float] = Field(min_length=1)


class EmbeddingResponse(BaseModel):
    """Payload of the embeddings endpoint."""

    data: List[EmbeddingItem]

    def ordered_vectors(self) -> List[List[float]]:
        """Vectors in input order, regardless of the order they were sent back."""
        return [item.embedding for item in sorted(self.data, key=lambda item: item.index)]
