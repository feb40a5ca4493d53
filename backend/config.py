"""Configuration management for the document retrieval backend."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Embedding Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_API_URL = os.getenv("EMBEDDING_API_URL", "https://api.openai.com/v1/embeddings")
EMBEDDING_DIMENSIONS = 1536

# Chunking Configuration
CHUNK_SIZE = 1000  # characters
CHUNK_OVERLAP = 200  # characters

# Batching Configuration
CHARS_PER_TOKEN = 4
MAX_TOKENS_PER_BATCH = 250000  # service limit is 300k
BATCH_DELAY_SECONDS = 0.1

# Retrieval Configuration
TOP_K = 10
MATCH_THRESHOLD = 0.35
SPARSE_RESULT_FLOOR = 3  # keyword fallback below this many vector hits
KEYWORD_SIMILARITY = 0.5
MAX_KEYWORDS = 5
MIN_KEYWORD_LENGTH = 4

# Storage Configuration
DOCUMENTS_TABLE = "documents"
CHUNKS_TABLE = "document_chunks"
MATCH_FUNCTION = "match_document_chunks"

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
