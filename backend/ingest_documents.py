"""
Document Ingestion Script.

This script:
1. Loads all text documents from a directory
2. Splits each into overlapping chunks
3. Generates embeddings in token-budgeted batches
4. Stores documents and chunks in Supabase pgvector

Usage:
    python ingest_documents.py --docs-dir ../docs
"""
import sys
import argparse
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_loader import DocumentLoader
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.embedding_batcher import EmbeddingBatcher
from services.rate_limiter import FixedDelayPolicy
from services.vector_store import VectorStore, StoreError, create_supabase_client
from services.ingestion_pipeline import IngestionPipeline, IngestionError
from logger import setup_logging
from config import CHUNK_SIZE, CHUNK_OVERLAP, MAX_TOKENS_PER_BATCH, BATCH_DELAY_SECONDS, LOG_LEVEL

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest text documents into the vector store")
    parser.add_argument("--docs-dir", default=str(Path(__file__).parent.parent / "docs"))
    parser.add_argument("--user-id", default="default")
    parser.add_argument("--chunk-size", type=int, default=CHUNK_SIZE)
    parser.add_argument("--overlap", type=int, default=CHUNK_OVERLAP)
    parser.add_argument("--max-batch-tokens", type=int, default=MAX_TOKENS_PER_BATCH)
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main ingestion process."""
    args = parse_args(argv)
    if args.json_logs:
        setup_logging(LOG_LEVEL)
    
    try:
        logger.info("Starting document ingestion")
        
        embedding_model = EmbeddingModel()
        batcher = EmbeddingBatcher(
            embedding_model,
            max_tokens_per_batch=args.max_batch_tokens,
            scheduler=FixedDelayPolicy(BATCH_DELAY_SECONDS)
        )
        store = VectorStore(create_supabase_client())
        pipeline = IngestionPipeline(
            ChunkingEngine(chunk_size=args.chunk_size, chunk_overlap=args.overlap),
            batcher,
            store
        )
        
        documents = DocumentLoader(docs_directory=args.docs_dir, user_id=args.user_id).load_documents()
        if not documents:
            logger.error(f"No documents found in {args.docs_dir}")
            return 1
        
        total_chunks = 0
        for document in documents:
            result = pipeline.ingest(document)
            total_chunks += result.chunk_count
            logger.info(f"  ✓ {result.filename}: {result.chunk_count} chunks")
        
        logger.info(f"Ingestion complete: {len(documents)} documents, {total_chunks} chunks")
        logger.info(f"Chunks in database: {store.count()}")
        return 0
    
    except IngestionError as e:
        logger.error(f"Ingestion failed for {e.filename}: {e.message}")
        return 1
    except StoreError as e:
        logger.error(f"Vector store error: {e}")
        return 1
    except ValueError as e:
        # Missing credentials or invalid sizes
        logger.error(f"Ingestion failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Ingestion failed: {type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
