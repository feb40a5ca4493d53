"""Hybrid retrieval: vector similarity search with a keyword safety net."""
import logging
from typing import Dict, Iterable, List, Optional, Protocol

from models.chunk import RetrievedChunk
from models.records import KeywordMatch
from config import (
    TOP_K,
    MATCH_THRESHOLD,
    SPARSE_RESULT_FLOOR,
    KEYWORD_SIMILARITY,
    MAX_KEYWORDS,
    MIN_KEYWORD_LENGTH,
)

logger = logging.getLogger(__name__)


class QueryEmbedder(Protocol):
    def embed_one(self, text: str) -> List[float]: ...


class VectorSearch(Protocol):
    def search(
        self, query_embedding: List[float], similarity_threshold: float, limit: int
    ) -> List[RetrievedChunk]: ...


class KeywordSearcher(Protocol):
    def search(self, keywords: Iterable[str], limit: int) -> List[KeywordMatch]: ...


def extract_keywords(
    query: str,
    max_keywords: int = MAX_KEYWORDS,
    min_length: int = MIN_KEYWORD_LENGTH
) -> List[str]:
    """
    Pick fallback keywords from a query.
    
    Lowercases, splits on whitespace, keeps tokens of at least ``min_length``
    characters and takes the first ``max_keywords`` of them in query order.
    """
    tokens = [token for token in query.lower().split() if len(token) >= min_length]
    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(tokens[:max_keywords]))


class RetrievalEngine:
    """Orchestrate query embedding, vector search and keyword fallback."""
    
    def __init__(
        self,
        embedder: QueryEmbedder,
        vector_store: VectorSearch,
        keyword_search: Optional[KeywordSearcher] = None,
        sparse_result_floor: int = SPARSE_RESULT_FLOOR,
        keyword_similarity: float = KEYWORD_SIMILARITY,
        max_keywords: int = MAX_KEYWORDS,
        min_keyword_length: int = MIN_KEYWORD_LENGTH
    ):
        """
        Initialize the retrieval engine.
        
        Args:
            embedder: Produces the query embedding (EmbeddingBatcher)
            vector_store: Similarity search collaborator
            keyword_search: Lexical search collaborator; None disables fallback
            sparse_result_floor: Fallback runs when fewer vector hits than this
            keyword_similarity: Flat score given to keyword-only hits
            max_keywords: Cap on fallback keywords per query
            min_keyword_length: Shortest token kept as a keyword
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.keyword_search = keyword_search
        self.sparse_result_floor = sparse_result_floor
        self.keyword_similarity = keyword_similarity
        self.max_keywords = max_keywords
        self.min_keyword_length = min_keyword_length
        logger.info("Initialized RetrievalEngine")
    
    def retrieve(
        self,
        query: str,
        top_k: int = TOP_K,
        vector_threshold: float = MATCH_THRESHOLD
    ) -> List[RetrievedChunk]:
        """
        Retrieve the chunks most relevant to a query.
        
        Steps:
        1. Embed the query
        2. Vector search for up to ``top_k`` chunks above ``vector_threshold``
        3. When vector hits are sparse, search for chunks containing any of
           the query keywords and give them a flat similarity
        4. Merge, keeping one entry per chunk id; the vector score wins
        5. Sort by similarity (stable, so vector hits lead ties) and cut to ``top_k``
        
        Collaborator failures never reach the caller: a failed query
        embedding yields no results and a failed search channel contributes
        nothing.
        
        Args:
            query: User question
            top_k: Maximum number of chunks to return
            vector_threshold: Minimum cosine similarity for vector hits
            
        Returns:
            Chunks sorted by similarity descending, at most ``top_k``
            
        Raises:
            ValueError: If top_k is not positive or vector_threshold is outside [0, 1]
        """
        if top_k <= 0:
            raise ValueError("top_k must be positive")
        if not 0.0 <= vector_threshold <= 1.0:
            raise ValueError("vector_threshold must be between 0 and 1")
        
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []
        
        try:
            query_embedding = self.embedder.embed_one(query)
        except Exception as e:
            logger.warning(f"Query embedding failed, retrieving without context: {e}")
            return []
        
        vector_results = self._vector_search(query_embedding, top_k, vector_threshold)
        
        keyword_results: List[RetrievedChunk] = []
        if len(vector_results) < self.sparse_result_floor:
            keyword_results = self._keyword_search(query, top_k)
        
        merged = self._merge(vector_results, keyword_results)
        ranked = sorted(merged, key=lambda chunk: chunk.similarity, reverse=True)[:top_k]
        
        logger.info(
            f"Retrieved {len(ranked)} chunks "
            f"({len(vector_results)} vector, {len(keyword_results)} keyword)"
        )
        return ranked
    
    def _vector_search(
        self,
        query_embedding: List[float],
        top_k: int,
        vector_threshold: float
    ) -> List[RetrievedChunk]:
        try:
            return list(self.vector_store.search(query_embedding, vector_threshold, top_k))
        except Exception as e:
            logger.warning(f"Vector search failed, continuing without vector results: {e}")
            return []
    
    def _keyword_search(self, query: str, top_k: int) -> List[RetrievedChunk]:
        if self.keyword_search is None:
            return []
        
        keywords = extract_keywords(query, self.max_keywords, self.min_keyword_length)
        if not keywords:
            logger.debug("No usable keywords in query, skipping keyword fallback")
            return []
        
        logger.debug(f"Sparse vector results, keyword fallback with {keywords}")
        try:
            matches = self.keyword_search.search(keywords, top_k)
        except Exception as e:
            logger.warning(f"Keyword search failed, continuing without keyword results: {e}")
            return []
        
        return [match.to_retrieved(self.keyword_similarity) for match in matches[:top_k]]
    
    @staticmethod
    def _merge(
        vector_results: List[RetrievedChunk],
        keyword_results: List[RetrievedChunk]
    ) -> List[RetrievedChunk]:
        """Union both channels in discovery order, one entry per chunk id."""
        merged: Dict[str, RetrievedChunk] = {}
        for chunk in vector_results:
            if chunk.id not in merged or chunk.similarity > merged[chunk.id].similarity:
                merged[chunk.id] = chunk
        for chunk in keyword_results:
            # Vector scores are graded; the keyword score is only a placeholder
            merged.setdefault(chunk.id, chunk)
        return list(merged.values())
