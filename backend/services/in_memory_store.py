"""In-process chunk store for local development and tests."""
import logging
import uuid
from typing import Dict, Iterable, List

import numpy as np

from models.chunk import Chunk, RetrievedChunk
from models.document import Document
from models.records import KeywordMatch

logger = logging.getLogger(__name__)


class InMemoryChunkStore:
    """Mirrors VectorStore with cosine similarity computed in numpy."""
    
    def __init__(self):
        self.documents: Dict[str, Document] = {}
        self._ids: List[str] = []
        self._document_ids: List[str] = []
        self._contents: List[str] = []
        self._embeddings: List[np.ndarray] = []
    
    def create_document(self, document: Document) -> str:
        document_id = str(uuid.uuid4())
        self.documents[document_id] = document
        return document_id
    
    def add_chunks(self, document_id: str, chunks: List[Chunk], embeddings: List[List[float]]) -> None:
        if not chunks:
            raise ValueError("Chunks list cannot be empty")
        if len(chunks) != len(embeddings):
            raise ValueError(f"Got {len(embeddings)} embeddings for {len(chunks)} chunks")
        
        for chunk, embedding in zip(chunks, embeddings):
            self._ids.append(str(uuid.uuid4()))
            self._document_ids.append(document_id)
            self._contents.append(chunk.content)
            self._embeddings.append(np.asarray(embedding, dtype=np.float32))
    
    def search(
        self,
        query_embedding: List[float],
        similarity_threshold: float,
        limit: int
    ) -> List[RetrievedChunk]:
        """Same contract as the match_document_chunks RPC: ``1 - cosine distance > threshold``."""
        if not query_embedding:
            raise ValueError("Query embedding cannot be empty")
        if limit <= 0:
            raise ValueError("limit must be positive")
        if not self._embeddings:
            return []
        
        matrix = np.vstack(self._embeddings)
        query = np.asarray(query_embedding, dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        # Zero vectors have no direction
        similarities = np.divide(
            matrix @ query, norms, out=np.zeros(len(matrix), dtype=np.float32), where=norms > 0
        )
        
        order = np.argsort(-similarities, kind="stable")
        results = []
        for i in order:
            score = float(similarities[i])
            if score <= similarity_threshold:
                break
            results.append(RetrievedChunk(
                id=self._ids[i],
                document_id=self._document_ids[i],
                content=self._contents[i],
                similarity=score,
            ))
            if len(results) == limit:
                break
        return results
    
    def keyword_search(self, keywords: Iterable[str], limit: int) -> List[KeywordMatch]:
        """Chunks containing any keyword, case-insensitively, in insertion order."""
        if limit <= 0:
            raise ValueError("limit must be positive")
        terms = [k.lower() for k in keywords if k]
        if not terms:
            return []
        
        matches = []
        for chunk_id, document_id, content in zip(self._ids, self._document_ids, self._contents):
            lowered = content.lower()
            if any(term in lowered for term in terms):
                matches.append(KeywordMatch(id=chunk_id, document_id=document_id, content=content))
                if len(matches) == limit:
                    break
        return matches
    
    def delete_document(self, document_id: str) -> None:
        self.documents.pop(document_id, None)
        keep = [i for i, d in enumerate(self._document_ids) if d != document_id]
        self._ids = [self._ids[i] for i in keep]
        self._document_ids = [self._document_ids[i] for i in keep]
        self._contents = [self._contents[i] for i in keep]
        self._embeddings = [self._embeddings[i] for i in keep]
    
    def count(self) -> int:
        return len(self._ids)


class InMemoryKeywordSearch:
    """Keyword-search view over an InMemoryChunkStore."""
    
    def __init__(self, store: InMemoryChunkStore):
        self.store = store
    
    def search(self, keywords: Iterable[str], limit: int) -> List[KeywordMatch]:
        return self.store.keyword_search(keywords, limit)
