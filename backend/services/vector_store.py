"""Flat-file vector store: one JSON document of records plus a metadata summary."""
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from models.chunk import VectorRecord
from models.index_metadata import IndexMetadata
from config import DATA_DIR

logger = logging.getLogger(__name__)


class NotIndexedError(RuntimeError):
    """The vector store file does not exist yet; run the indexer first."""


class IndexLockError(RuntimeError):
    """Another indexing run holds the lock for this store."""


class VectorStore:
    """
    Store embedded chunks as a single JSON file.

    Writes replace the whole file atomically (temp file + rename), so a
    concurrent reader sees either the old store or the new one.
    """

    def __init__(self, data_dir: Path = DATA_DIR):
        """
        Initialize the vector store.

        Args:
            data_dir: Directory holding ``vectors/embeddings.json`` and ``metadata.json``
        """
        self.data_dir = Path(data_dir)
        self.vectors_path = self.data_dir / "vectors" / "embeddings.json"
        self.metadata_path = self.data_dir / "metadata.json"
        self.lock_path = self.data_dir / "index.lock"

        logger.info(f"Initialized VectorStore at: {self.data_dir}")

    def exists(self) -> bool:
        return self.vectors_path.is_file()

    def save(self, records: Sequence[VectorRecord]) -> None:
        """
        Replace the stored records.

        Args:
            records: Records in id order

        Raises:
            ValueError: If embeddings do not all have the same dimension
        """
        dimensions = {len(record.embedding) for record in records}
        if len(dimensions) > 1:
            raise ValueError(f"Inconsistent embedding dimensions: {sorted(dimensions)}")

        self._write_json(self.vectors_path, [record.to_dict() for record in records])
        logger.info(f"Saved {len(records)} vectors to {self.vectors_path}")

    def load(self) -> List[VectorRecord]:
        """
        Read every stored record, in stored order.

        Raises:
            NotIndexedError: If no store has been written yet
        """
        if not self.exists():
            raise NotIndexedError(
                f"Vector store not found at {self.vectors_path}. Run the indexer first (rag-index)."
            )

        with open(self.vectors_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        records = [VectorRecord.from_dict(item) for item in data]
        logger.info(f"Loaded {len(records)} vectors from {self.vectors_path}")
        return records

    def save_metadata(self, metadata: IndexMetadata) -> None:
        self._write_json(self.metadata_path, metadata.to_dict(), indent=2)
        logger.info(f"Saved index metadata to {self.metadata_path}")

    def load_metadata(self) -> Optional[IndexMetadata]:
        """Return the summary of the last run, or None when there is none."""
        if not self.metadata_path.is_file():
            return None

        with open(self.metadata_path, "r", encoding="utf-8") as f:
            return IndexMetadata.from_dict(json.load(f))

    @contextmanager
    def index_lock(self) -> Iterator[None]:
        """
        Advisory lock held for the duration of an indexing run.

        Raises:
            IndexLockError: If the lock file already exists
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            raise IndexLockError(
                f"Indexing already in progress (lock file {self.lock_path}). "
                "Remove it if no indexer is running."
            )

        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
            os.close(fd)
            yield
        finally:
            try:
                os.remove(self.lock_path)
            except FileNotFoundError:
                logger.warning(f"Lock file {self.lock_path} disappeared before release")

    def _write_json(self, path: Path, payload: Any, indent: Optional[int] = None) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=indent, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
