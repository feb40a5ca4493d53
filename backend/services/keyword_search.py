"""Case-insensitive keyword search over stored chunks."""
import logging
from typing import Iterable, List

from pydantic import ValidationError
from supabase import Client

from models.records import KeywordMatch
from services.vector_store import StoreError
from config import CHUNKS_TABLE

logger = logging.getLogger(__name__)

# PostgREST reserves these inside an or=(...) filter value and reads * as a wildcard
_RESERVED = str.maketrans({",": " ", "(": " ", ")": " ", '"': " ", "\\": " ", "*": " "})
# LIKE wildcards, matched literally once escaped
_WILDCARDS = str.maketrans({"%": "\\%", "_": "\\_"})


def build_or_filter(keywords: Iterable[str], column: str = "content") -> str:
    """Render keywords as an OR-combined ilike filter, e.g. ``content.ilike.%a%,content.ilike.%b%``."""
    clauses = []
    for keyword in keywords:
        term = keyword.translate(_RESERVED).strip()
        if term:
            clauses.append(f"{column}.ilike.%{term.translate(_WILDCARDS)}%")
    return ",".join(clauses)


class KeywordSearch:
    """Lexical search matching chunks that contain any of the given keywords."""
    
    def __init__(self, client: Client, chunks_table: str = CHUNKS_TABLE):
        self.client = client
        self.chunks_table = chunks_table
    
    def search(self, keywords: Iterable[str], limit: int) -> List[KeywordMatch]:
        """
        Return up to ``limit`` chunks containing at least one keyword.
        
        Raises:
            ValueError: If limit is not positive
            StoreError: If the query fails or returns malformed rows
        """
        if limit <= 0:
            raise ValueError("limit must be positive")
        
        or_filter = build_or_filter(keywords)
        if not or_filter:
            return []
        
        try:
            response = (
                self.client.table(self.chunks_table)
                .select("id, document_id, content")
                .or_(or_filter)
                .limit(limit)
                .execute()
            )
            rows = [KeywordMatch.model_validate(row) for row in (response.data or [])]
        except ValidationError as e:
            error_msg = f"Malformed row from keyword search: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
        except Exception as e:
            error_msg = f"Failed to run keyword search: {str(e)}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e
        
        logger.debug(f"Keyword search matched {len(rows)} chunks")
        return rows
