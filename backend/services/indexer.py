"""Codebase indexer: collect, read, chunk, embed, persist, summarize."""
import logging
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from models.chunk import Chunk, IndexResult, VectorRecord
from models.index_metadata import IndexMetadata
from models.source_file import SourceFile
from services.chunking_engine import ChunkingEngine, get_file_type
from services.embedding_model import EmbeddingModel
from services.source_loader import SourceLoader
from services.vector_store import VectorStore
from config import EMBEDDING_BATCH_SIZE, config_snapshot

logger = logging.getLogger(__name__)


class CodebaseIndexer:
    """Build the vector store for a project from scratch."""

    def __init__(
        self,
        source_loader: SourceLoader,
        chunking_engine: ChunkingEngine,
        embedding_model: EmbeddingModel,
        vector_store: VectorStore,
        batch_size: int = EMBEDDING_BATCH_SIZE,
        config_provider: Callable[[], Dict[str, Any]] = config_snapshot
    ):
        """
        Initialize the indexer.

        Args:
            source_loader: Finds and reads project files
            chunking_engine: Splits file text into chunks
            embedding_model: Embeds chunk texts
            vector_store: Destination of records and metadata
            batch_size: Chunks per embedding request
            config_provider: Returns the configuration snapshot stored with the index
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.source_loader = source_loader
        self.chunking_engine = chunking_engine
        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.batch_size = batch_size
        self.config_provider = config_provider

    def index_codebase(self) -> IndexResult:
        """
        Run the full pipeline and overwrite the store.

        Phases run strictly in order. Unreadable files are skipped; an
        embedding failure aborts the run before anything is written.

        Returns:
            IndexResult with file and chunk counts

        Raises:
            IndexLockError: If another run holds the store lock
            EmbeddingProviderError: If any embedding batch fails
        """
        start_time = time.time()
        logger.info(f"Indexing codebase at {self.source_loader.project_root}")

        with self.vector_store.index_lock():
            # 1. Collect
            paths = self.source_loader.collect_files()

            # 2. Process
            source_files, skipped = self.source_loader.load_files(paths)

            # 3. Chunk
            chunks = self.chunk_files(source_files)
            logger.info(
                f"Generated {len(chunks)} chunks from {len(source_files)} files",
                extra={"chunk_count": len(chunks), "file_count": len(source_files)}
            )

            # 4. Embed
            embeddings = self.generate_embeddings(chunks)

            # 5. Persist
            records = self.build_records(chunks, embeddings)
            self.vector_store.save(records)

            # 6. Summarize
            relative_paths = [self.source_loader.relative_path(path) for path in paths]
            metadata = self.build_metadata(relative_paths, len(chunks))
            self.vector_store.save_metadata(metadata)

        elapsed = time.time() - start_time
        logger.info(f"Indexing complete: {len(paths)} files, {len(chunks)} chunks in {elapsed:.1f}s")

        return IndexResult(file_count=len(paths), chunk_count=len(chunks), skipped_files=skipped)

    def chunk_files(self, source_files: List[SourceFile]) -> List[Chunk]:
        """Chunk every file; chunk order follows file order."""
        chunks: List[Chunk] = []
        for source_file in source_files:
            chunks.extend(self.chunking_engine.chunk_file(source_file.content, source_file.path))
        return chunks

    def generate_embeddings(self, chunks: List[Chunk]) -> List[List[float]]:
        """
        Embed chunk contents in fixed-size batches, preserving order.

        Raises:
            EmbeddingProviderError: Re-raised after logging the failing batch range
        """
        embeddings: List[List[float]] = []
        total = len(chunks)

        for start in range(0, total, self.batch_size):
            end = min(start + self.batch_size, total)
            texts = [chunk.content for chunk in chunks[start:end]]

            try:
                embeddings.extend(self.embedding_model.embed_batch(texts))
            except Exception:
                logger.error(
                    f"Embedding failed for batch {start}-{end}",
                    exc_info=True,
                    extra={"batch_start": start, "batch_end": end}
                )
                raise

            logger.info(f"Embedded {end}/{total} chunks")

        return embeddings

    @staticmethod
    def build_records(chunks: List[Chunk], embeddings: List[List[float]]) -> List[VectorRecord]:
        """Pair chunks with embeddings under global ids ``chunk_0``, ``chunk_1``, ..."""
        if len(chunks) != len(embeddings):
            raise ValueError(f"Got {len(embeddings)} embeddings for {len(chunks)} chunks")

        return [
            VectorRecord(
                id=f"chunk_{index}",
                embedding=embedding,
                metadata=chunk.metadata,
                content=chunk.content,
            )
            for index, (chunk, embedding) in enumerate(zip(chunks, embeddings))
        ]

    def build_metadata(
        self,
        relative_paths: List[str],
        total_chunks: int,
        indexed_at: Optional[datetime] = None
    ) -> IndexMetadata:
        indexed_at = indexed_at or datetime.now(timezone.utc)
        file_types = Counter(get_file_type(path) for path in relative_paths)

        return IndexMetadata(
            indexed_at=indexed_at.isoformat().replace("+00:00", "Z"),
            total_files=len(relative_paths),
            total_chunks=total_chunks,
            file_types=dict(file_types),
            config=self.config_provider(),
        )


def build_default_indexer(project_root: Optional[Path] = None, data_dir: Optional[Path] = None) -> CodebaseIndexer:
    """Wire an indexer from the environment configuration."""
    loader = SourceLoader() if project_root is None else SourceLoader(project_root=project_root)
    store = VectorStore() if data_dir is None else VectorStore(data_dir=data_dir)
    return CodebaseIndexer(
        source_loader=loader,
        chunking_engine=ChunkingEngine(),
        embedding_model=EmbeddingModel(),
        vector_store=store,
    )
