"""
Retrieve context for a question from the command line.

Usage:
    python search_documents.py "What changed in the 2021 regulation?" --top-k 5
"""
import sys
import argparse
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.embedding_model import EmbeddingModel
from services.embedding_batcher import EmbeddingBatcher
from services.rate_limiter import NoDelayPolicy
from services.vector_store import VectorStore, create_supabase_client
from services.keyword_search import KeywordSearch
from services.retrieval_engine import RetrievalEngine
from services.context_assembler import ContextAssembler
from config import TOP_K, MATCH_THRESHOLD

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Print the retrieved context for a query")
    parser.add_argument("query")
    parser.add_argument("--top-k", type=int, default=TOP_K)
    parser.add_argument("--threshold", type=float, default=MATCH_THRESHOLD)
    parser.add_argument("--system-prompt", action="store_true", help="Print the full system prompt")
    args = parser.parse_args(argv)
    
    try:
        client = create_supabase_client()
        engine = RetrievalEngine(
            EmbeddingBatcher(EmbeddingModel(), scheduler=NoDelayPolicy()),
            VectorStore(client),
            KeywordSearch(client)
        )
        chunks = engine.retrieve(args.query, top_k=args.top_k, vector_threshold=args.threshold)
    except ValueError as e:
        logger.error(str(e))
        return 1
    
    assembler = ContextAssembler()
    if args.system_prompt:
        print(assembler.build_system_prompt(chunks))
    elif chunks:
        print(assembler.assemble(chunks))
    else:
        print("No relevant context found.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
