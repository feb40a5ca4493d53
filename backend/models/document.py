"""Document data models."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Document:
    """Represents a loaded source document awaiting ingestion."""
    filename: str
    text: str
    file_type: str
    file_size: int
    user_id: str = "default"
    document_id: Optional[str] = None  # assigned by the store on creation


@dataclass
class IngestionResult:
    """Outcome of ingesting a single document."""
    document_id: str
    filename: str
    chunk_count: int
