"""Unit tests for RetrievalEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from services.retrieval_engine import RetrievalEngine, extract_keywords
from services.vector_store import StoreError
from services.embedding_model import EmbeddingError, EmbeddingServiceError
from models.chunk import RetrievedChunk
from models.records import KeywordMatch


def vector_hit(chunk_id, similarity, document_id="doc1"):
    return RetrievedChunk(
        id=chunk_id,
        document_id=document_id,
        content=f"Vector content {chunk_id}",
        similarity=similarity
    )


def keyword_hit(chunk_id, document_id="doc1"):
    return KeywordMatch(id=chunk_id, document_id=document_id, content=f"Keyword content {chunk_id}")


class TestExtractKeywords:
    """Test suite for extract_keywords."""
    
    def test_keeps_tokens_longer_than_three(self):
        assert extract_keywords("What does the Regulation say") == ["what", "does", "regulation"]
    
    def test_short_words_only(self):
        assert extract_keywords("a is it") == []
    
    def test_caps_at_five_in_query_order(self):
        query = "alpha bravo charlie delta echo foxtrot golf"
        assert extract_keywords(query) == ["alpha", "bravo", "charlie", "delta", "echo"]
    
    def test_splits_on_any_whitespace(self):
        assert extract_keywords("Greek\ttext\nsearch") == ["greek", "text", "search"]
    
    def test_duplicates_collapsed(self):
        assert extract_keywords("Data data DATA model") == ["data", "model"]


class TestRetrievalEngine:
    """Test suite for RetrievalEngine class."""
    
    @pytest.fixture
    def mock_vector_store(self):
        """Create a mock vector search collaborator."""
        store = Mock()
        store.search.return_value = []
        return store
    
    @pytest.fixture
    def mock_keyword_search(self):
        """Create a mock keyword search collaborator."""
        search = Mock()
        search.search.return_value = []
        return search
    
    @pytest.fixture
    def mock_embedder(self):
        """Create a mock embedder."""
        embedder = Mock()
        embedder.embed_one.return_value = [0.1] * 1536
        return embedder
    
    @pytest.fixture
    def retrieval_engine(self, mock_embedder, mock_vector_store, mock_keyword_search):
        """Create a RetrievalEngine instance with mocks."""
        return RetrievalEngine(mock_embedder, mock_vector_store, mock_keyword_search)
    
    def test_initialization(self, retrieval_engine, mock_vector_store, mock_embedder):
        """Test that RetrievalEngine initializes correctly."""
        assert retrieval_engine.vector_store == mock_vector_store
        assert retrieval_engine.embedder == mock_embedder
        assert retrieval_engine.sparse_result_floor == 3
        assert retrieval_engine.keyword_similarity == 0.5
    
    def test_retrieve_empty_query(self, retrieval_engine, mock_embedder):
        """Test that empty query returns empty list."""
        assert retrieval_engine.retrieve("") == []
        assert retrieval_engine.retrieve("   ") == []
        mock_embedder.embed_one.assert_not_called()
    
    def test_invalid_top_k(self, retrieval_engine):
        with pytest.raises(ValueError, match="top_k must be positive"):
            retrieval_engine.retrieve("query", top_k=0)
    
    def test_invalid_threshold(self, retrieval_engine):
        with pytest.raises(ValueError, match="vector_threshold"):
            retrieval_engine.retrieve("query", vector_threshold=1.5)
    
    def test_passes_threshold_and_limit_to_vector_search(
        self, retrieval_engine, mock_embedder, mock_vector_store
    ):
        retrieval_engine.retrieve("test query", top_k=7, vector_threshold=0.4)
        
        mock_embedder.embed_one.assert_called_once_with("test query")
        mock_vector_store.search.assert_called_once_with([0.1] * 1536, 0.4, 7)
    
    def test_dense_vector_results_skip_keyword_fallback(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [
            vector_hit("c1", 0.9), vector_hit("c2", 0.8), vector_hit("c3", 0.7)
        ]
        
        result = retrieval_engine.retrieve("quarterly revenue figures")
        
        assert [c.id for c in result] == ["c1", "c2", "c3"]
        mock_keyword_search.search.assert_not_called()
    
    def test_sparse_vector_results_trigger_keyword_fallback(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [vector_hit("c1", 0.9), vector_hit("c2", 0.8)]
        mock_keyword_search.search.return_value = [keyword_hit("k1")]
        
        result = retrieval_engine.retrieve("What is the Regulation number", top_k=5)
        
        mock_keyword_search.search.assert_called_once_with(["what", "regulation", "number"], 5)
        assert [(c.id, c.similarity) for c in result] == [("c1", 0.9), ("c2", 0.8), ("k1", 0.5)]
    
    def test_overlapping_id_keeps_vector_score(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        """One vector hit at 0.8 plus two keyword hits, one sharing its id."""
        mock_vector_store.search.return_value = [vector_hit("shared", 0.8)]
        mock_keyword_search.search.return_value = [keyword_hit("shared"), keyword_hit("other")]
        
        result = retrieval_engine.retrieve("decision about emissions trading")
        
        assert [(c.id, c.similarity) for c in result] == [("shared", 0.8), ("other", 0.5)]
        assert result[0].content == "Vector content shared"
    
    def test_vector_score_wins_even_below_keyword_default(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [vector_hit("shared", 0.4)]
        mock_keyword_search.search.return_value = [keyword_hit("shared")]
        
        result = retrieval_engine.retrieve("emissions trading")
        
        assert len(result) == 1
        assert result[0].similarity == 0.4
    
    def test_keyword_default_can_outrank_weak_vector_hit(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [vector_hit("weak", 0.4)]
        mock_keyword_search.search.return_value = [keyword_hit("lexical")]
        
        result = retrieval_engine.retrieve("emissions trading")
        
        assert [c.id for c in result] == ["lexical", "weak"]
    
    def test_short_word_query_skips_fallback(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [vector_hit("c1", 0.6)]
        
        result = retrieval_engine.retrieve("a is it")
        
        mock_keyword_search.search.assert_not_called()
        assert [c.id for c in result] == ["c1"]
    
    def test_ties_keep_vector_results_first(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [vector_hit("v1", 0.5)]
        mock_keyword_search.search.return_value = [keyword_hit("k1"), keyword_hit("k2")]
        
        result = retrieval_engine.retrieve("renewable energy directive")
        
        assert [c.id for c in result] == ["v1", "k1", "k2"]
    
    def test_truncates_to_top_k_sorted(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [vector_hit("v1", 0.45)]
        mock_keyword_search.search.return_value = [keyword_hit(f"k{i}") for i in range(4)]
        
        result = retrieval_engine.retrieve("renewable energy directive", top_k=3)
        
        assert len(result) == 3
        similarities = [c.similarity for c in result]
        assert similarities == sorted(similarities, reverse=True)
        assert [c.id for c in result] == ["k0", "k1", "k2"]
    
    def test_keyword_results_capped_at_top_k(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_keyword_search.search.return_value = [keyword_hit(f"k{i}") for i in range(10)]
        
        result = retrieval_engine.retrieve("renewable energy directive", top_k=4)
        
        assert len(result) == 4
    
    def test_embedding_failure_returns_empty(
        self, retrieval_engine, mock_embedder, mock_vector_store, mock_keyword_search
    ):
        """A failed query embedding degrades to no context."""
        mock_embedder.embed_one.side_effect = EmbeddingServiceError(
            EmbeddingError(code="service_unavailable", message="down")
        )
        
        assert retrieval_engine.retrieve("test query") == []
        mock_vector_store.search.assert_not_called()
        mock_keyword_search.search.assert_not_called()
    
    def test_vector_failure_falls_back_to_keywords(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.side_effect = StoreError("rpc failed")
        mock_keyword_search.search.return_value = [keyword_hit("k1")]
        
        result = retrieval_engine.retrieve("renewable energy directive")
        
        assert [(c.id, c.similarity) for c in result] == [("k1", 0.5)]
    
    def test_keyword_failure_keeps_vector_results(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.return_value = [vector_hit("v1", 0.7)]
        mock_keyword_search.search.side_effect = StoreError("query failed")
        
        result = retrieval_engine.retrieve("renewable energy directive")
        
        assert [c.id for c in result] == ["v1"]
    
    def test_both_channels_failing_returns_empty(
        self, retrieval_engine, mock_vector_store, mock_keyword_search
    ):
        mock_vector_store.search.side_effect = StoreError("rpc failed")
        mock_keyword_search.search.side_effect = StoreError("query failed")
        
        assert retrieval_engine.retrieve("renewable energy directive") == []
    
    def test_without_keyword_search(self, mock_embedder, mock_vector_store):
        engine = RetrievalEngine(mock_embedder, mock_vector_store)
        mock_vector_store.search.return_value = [vector_hit("v1", 0.7)]
        
        assert [c.id for c in engine.retrieve("renewable energy")] == ["v1"]
    
    def test_custom_fallback_tuning(self, mock_embedder, mock_vector_store, mock_keyword_search):
        engine = RetrievalEngine(
            mock_embedder,
            mock_vector_store,
            mock_keyword_search,
            sparse_result_floor=1,
            keyword_similarity=0.2
        )
        mock_vector_store.search.return_value = []
        mock_keyword_search.search.return_value = [keyword_hit("k1")]
        
        result = engine.retrieve("renewable energy")
        
        assert result[0].similarity == 0.2
