"""Services for the document retrieval backend."""
from .chunking_engine import ChunkingEngine, segment
from .embedding_model import EmbeddingModel, EmbeddingError, EmbeddingServiceError
from .embedding_batcher import EmbeddingBatcher, EmbeddingBatchError, estimate_tokens, plan_batches
from .rate_limiter import FixedDelayPolicy, TokenBucketPolicy, NoDelayPolicy
from .vector_store import VectorStore, StoreError, create_supabase_client
from .keyword_search import KeywordSearch
from .in_memory_store import InMemoryChunkStore, InMemoryKeywordSearch
from .retrieval_engine import RetrievalEngine, extract_keywords
from .context_assembler import ContextAssembler, assemble
from .document_loader import DocumentLoader
from .ingestion_pipeline import IngestionPipeline, IngestionError

__all__ = ['ChunkingEngine', 'segment', 'EmbeddingModel', 'EmbeddingError', 'EmbeddingServiceError', 'EmbeddingBatcher', 'EmbeddingBatchError', 'estimate_tokens', 'plan_batches', 'FixedDelayPolicy', 'TokenBucketPolicy', 'NoDelayPolicy', 'VectorStore', 'StoreError', 'create_supabase_client', 'KeywordSearch', 'InMemoryChunkStore', 'InMemoryKeywordSearch', 'RetrievalEngine', 'extract_keywords', 'ContextAssembler', 'assemble', 'DocumentLoader', 'IngestionPipeline', 'IngestionError']
