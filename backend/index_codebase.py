"""
Codebase indexing script.

This script:
1. Collects source files under the project root
2. Reads them, skipping files that cannot be read
3. Chunks them into overlapping line-based segments
4. Embeds all chunks in batches
5. Writes the vector store and its metadata summary

Usage:
    python index_codebase.py [--root PATH] [--data-dir PATH]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from logger import configure_from_settings
from services.embedding_model import EmbeddingProviderError
from services.indexer import build_default_indexer
from services.vector_store import IndexLockError

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index a codebase for semantic search")
    parser.add_argument("--root", type=Path, default=None, help="Project root to scan (default: PROJECT_ROOT)")
    parser.add_argument("--data-dir", type=Path, default=None, help="Where to write the store (default: RAG_DATA_DIR)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main indexing process. Returns the process exit code."""
    configure_from_settings()
    args = parse_args(argv)

    try:
        logger.info("=" * 60)
        logger.info("Starting codebase indexing")
        logger.info("=" * 60)

        indexer = build_default_indexer(project_root=args.root, data_dir=args.data_dir)
        result = indexer.index_codebase()

        logger.info("=" * 60)
        logger.info("INDEXING COMPLETE!")
        logger.info("=" * 60)
        logger.info(f"Files found: {result.file_count}")
        logger.info(f"Files skipped: {len(result.skipped_files)}")
        logger.info(f"Chunks stored: {result.chunk_count}")
        logger.info("Search with: rag-search, chat with: rag-chat, serve with: rag-serve")
        return 0

    except IndexLockError as e:
        logger.error(str(e))
        return 2
    except EmbeddingProviderError as e:
        logger.error(f"Indexing aborted, store left unchanged: {e}")
        return 1
    except ValueError as e:
        # Missing credentials or invalid chunking settings
        logger.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Indexing interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
