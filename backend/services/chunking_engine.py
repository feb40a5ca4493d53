"""Chunking engine that splits text at sentence and word boundaries."""
import logging
import re
from typing import List, Optional

from models.chunk import Chunk
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")

# Sentence terminators followed by a space
SENTENCE_BREAKS = (". ", "? ", "! ")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run (newlines and tabs included) to one space."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def find_chunk_end(text: str, start: int, chunk_size: int) -> int:
    """
    Choose where the chunk beginning at ``start`` should end.
    
    Prefers the rightmost sentence terminator at or before the naive end,
    then the rightmost space, and only cuts mid-word when neither lies
    past ``start``.
    
    Args:
        text: Normalized text
        start: Index the chunk begins at
        chunk_size: Target chunk length in characters
        
    Returns:
        Exclusive end index of the chunk
    """
    end = start + chunk_size
    if end >= len(text):
        return end
    
    # A terminator counts if it begins at or before the naive end
    sentence_boundary = max(
        text.rfind(separator, 0, end + len(separator)) for separator in SENTENCE_BREAKS
    )
    if sentence_boundary > start:
        # Keep the punctuation, drop the trailing space
        return sentence_boundary + 1
    
    word_boundary = text.rfind(" ", 0, end + 1)
    if word_boundary > start:
        return word_boundary
    
    return end


def segment(
    text: str,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP
) -> List[Chunk]:
    """
    Split text into overlapping chunks at semantic boundaries.
    
    Args:
        text: Raw document text
        chunk_size: Target chunk length in characters
        overlap: Characters shared between consecutive chunks
        
    Returns:
        Ordered chunks; empty if the text holds no visible characters
        
    Raises:
        ValueError: If chunk_size is not positive or overlap is negative
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0:
        raise ValueError("overlap cannot be negative")
    
    clean_text = normalize_whitespace(text or "")
    chunks: List[Chunk] = []
    if not clean_text:
        return chunks
    
    start = 0
    while start < len(clean_text):
        end = find_chunk_end(clean_text, start, chunk_size)
        
        content = clean_text[start:end].strip()
        if content:
            chunks.append(Chunk(content=content, index=len(chunks)))
        
        next_start = end - overlap
        # Overlap as large as the chunk would stall; jump to the end instead
        if next_start <= start:
            next_start = end
        start = next_start
    
    return chunks


class ChunkingEngine:
    """Segments documents into retrievable chunks."""
    
    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.
        
        Args:
            chunk_size: Target chunk size in characters
            chunk_overlap: Overlap between chunks in characters
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap cannot be negative")
        if chunk_overlap >= chunk_size:
            logger.warning(
                f"Overlap {chunk_overlap} >= chunk size {chunk_size}; "
                "chunks will advance without overlap"
            )
        
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
    
    def segment(
        self,
        text: str,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None
    ) -> List[Chunk]:
        """
        Segment text, falling back to the engine's configured sizes.
        
        Args:
            text: Raw document text
            chunk_size: Override for the configured chunk size
            overlap: Override for the configured overlap
            
        Returns:
            List of Chunk objects in production order
        """
        chunks = segment(
            text,
            chunk_size=self.chunk_size if chunk_size is None else chunk_size,
            overlap=self.chunk_overlap if overlap is None else overlap,
        )
        logger.debug(f"Segmented {len(text or '')} characters into {len(chunks)} chunks")
        return chunks
