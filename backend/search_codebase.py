"""
One-shot semantic search from the command line.

Usage:
    python search_codebase.py "how are profiles created?" [--top-k 5] [--type typescript]
"""
import argparse
import logging
import sys
from typing import List, Optional

from logger import configure_from_settings
from models.chunk import ScoredRecord
from services.embedding_model import EmbeddingModel, EmbeddingProviderError
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore, NotIndexedError

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200


def format_result(rank: int, result: ScoredRecord) -> str:
    """Human-readable block for one search hit."""
    preview = result.content[:PREVIEW_CHARS].replace("\n", " ")
    return "\n".join([
        f"{rank}. {result.metadata.file_path}",
        f"   Similarity: {result.similarity * 100:.1f}%",
        f"   Type: {result.metadata.file_type}",
        f"   Content: {preview}...",
        "   " + "-" * 50,
    ])


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search the indexed codebase")
    parser.add_argument("query", nargs="?", help="Search query (prompted for when omitted)")
    parser.add_argument("--top-k", type=int, default=5, help="Number of results (default: 5)")
    parser.add_argument("--type", dest="file_type", default=None, help="Only return chunks of this file type")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    configure_from_settings()
    args = parse_args(argv)

    query = args.query if args.query is not None else input("Search query: ")
    if not query.strip():
        print("No query given")
        return 1

    try:
        engine = RetrievalEngine(VectorStore(), EmbeddingModel())
        print(f"Searching {len(engine.snapshot)} chunks...")
        results = engine.search(query, top_k=args.top_k, file_type=args.file_type)
    except NotIndexedError:
        print("No vector data found. Run rag-index first.", file=sys.stderr)
        return 1
    except (EmbeddingProviderError, ValueError) as e:
        print(f"Search failed: {e}", file=sys.stderr)
        return 1

    print(f"\nTop {len(results)} results:")
    print("=" * 37)
    for rank, result in enumerate(results, start=1):
        print()
        print(format_result(rank, result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
