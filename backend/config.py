"""Configuration management for the codebase RAG assistant."""
import os
import logging
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# API Keys
EMBEDDING_API_KEY = os.getenv("EMBEDDING_API_KEY") or os.getenv("OPENAI_API_KEY")
GROQ_API_KEY = os.getenv("GROQ_API_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "3001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Embedding Configuration
EMBEDDING_API_URL = os.getenv("EMBEDDING_API_URL", "https://api.openai.com/v1/embeddings")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "1536"))
EMBEDDING_BATCH_SIZE = 100  # texts per provider call

# Chunking Configuration
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))  # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))  # characters, ~50 per line

# Completion Configuration
COMPLETION_MODEL = os.getenv("COMPLETION_MODEL", "llama-3.3-70b-versatile")
COMPLETION_TEMPERATURE = 0.1
COMPLETION_MAX_TOKENS = 2000

# Retrieval Configuration
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))
RETRIEVAL_MAX_CONTEXT_TOKENS = 4000
HISTORY_MAX_MESSAGES = 6  # three user/assistant exchanges

# File Scan Configuration
SUPPORTED_EXTENSIONS = _split_list(os.getenv(
    "SUPPORTED_EXTENSIONS",
    ".ts,.js,.tsx,.jsx,.sql,.py,.md,.txt,.json,.yaml,.toml"
))
EXCLUDE_PATTERNS = _split_list(os.getenv(
    "EXCLUDE_PATTERNS",
    "node_modules,dist,build,.next,.git,coverage"
))
MAX_FILE_SIZE_BYTES = int(os.getenv("MAX_FILE_SIZE_BYTES", str(10 * 1024 * 1024)))

# Paths
PROJECT_ROOT = Path(os.getenv("PROJECT_ROOT", ".")).resolve()
DATA_DIR = Path(os.getenv("RAG_DATA_DIR", "data")).resolve()

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def config_snapshot() -> Dict[str, Any]:
    """
    Snapshot of the settings that shape an index.

    Stored alongside the vectors so a reader can tell which model and
    chunking policy produced them. Credentials are left out.
    """
    return {
        "embedding": {
            "model": EMBEDDING_MODEL,
            "dimension": EMBEDDING_DIMENSION,
            "chunkSize": CHUNK_SIZE,
            "chunkOverlap": CHUNK_OVERLAP,
            "batchSize": EMBEDDING_BATCH_SIZE,
        },
        "files": {
            "supportedExtensions": list(SUPPORTED_EXTENSIONS),
            "excludePatterns": list(EXCLUDE_PATTERNS),
            "maxFileSize": MAX_FILE_SIZE_BYTES,
            "encoding": "utf-8",
        },
    }
