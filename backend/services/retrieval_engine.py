"""Retrieval engine: brute-force cosine ranking over the loaded vector store."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from models.chunk import ScoredRecord, VectorRecord
from models.index_metadata import IndexMetadata
from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|).

    Zero-norm input yields NaN rather than an error.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Dimension mismatch: {va.shape[0]} vs {vb.shape[0]}")

    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.dot(va, vb) / (np.linalg.norm(va) * np.linalg.norm(vb)))


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable in-memory copy of the store used to answer queries."""
    records: Tuple[VectorRecord, ...]
    matrix: np.ndarray  # shape (N, D)
    norms: np.ndarray  # shape (N,)
    metadata: Optional[IndexMetadata]

    @classmethod
    def from_records(
        cls,
        records: Sequence[VectorRecord],
        metadata: Optional[IndexMetadata] = None
    ) -> "StoreSnapshot":
        if records:
            matrix = np.asarray([record.embedding for record in records], dtype=np.float64)
            if matrix.ndim != 2:
                raise ValueError("Stored embeddings do not share one dimension")
        else:
            matrix = np.zeros((0, 0), dtype=np.float64)
        matrix.setflags(write=False)
        norms = np.linalg.norm(matrix, axis=1) if records else np.zeros(0)
        return cls(records=tuple(records), matrix=matrix, norms=norms, metadata=metadata)

    @property
    def dimension(self) -> int:
        return self.matrix.shape[1] if self.records else 0

    def __len__(self) -> int:
        return len(self.records)


class RetrievalEngine:
    """Embed queries and rank every stored record by cosine similarity."""

    def __init__(self, vector_store: VectorStore, embedding_model: EmbeddingModel):
        """
        Initialize the retrieval engine.

        The store is loaded on first use and kept in memory until
        ``reload()`` is called; a re-index is not picked up automatically.

        Args:
            vector_store: Store to read records from
            embedding_model: EmbeddingModel instance for query embedding
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self._snapshot: Optional[StoreSnapshot] = None
        logger.info("Initialized RetrievalEngine")

    @property
    def snapshot(self) -> StoreSnapshot:
        """
        Current snapshot, loading it on first access.

        Raises:
            NotIndexedError: If the store has not been written
        """
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self.reload()
        return snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def reload(self) -> StoreSnapshot:
        """
        Read the store again and swap in the new snapshot.

        Queries already running keep the snapshot they started with.
        """
        records = self.vector_store.load()
        metadata = self.vector_store.load_metadata()
        snapshot = StoreSnapshot.from_records(records, metadata)
        self._snapshot = snapshot
        logger.info(f"Loaded store snapshot: {len(snapshot)} records, dimension {snapshot.dimension}")
        return snapshot

    def search(
        self,
        query: str,
        top_k: int = 5,
        file_type: Optional[str] = None
    ) -> List[ScoredRecord]:
        """
        Rank stored chunks against a query.

        Args:
            query: Free-text query
            top_k: Maximum number of results
            file_type: Only consider records whose metadata type equals this

        Returns:
            Up to ``top_k`` scored records, highest similarity first; ties
            keep store order and NaN scores sort last

        Raises:
            ValueError: If top_k is not positive
            NotIndexedError: If the store has not been written
            EmbeddingProviderError: If the query cannot be embedded
        """
        if top_k <= 0:
            raise ValueError("top_k must be positive")

        # Handle empty query strings gracefully
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        snapshot = self.snapshot

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = self.embedding_model.embed_query(query)

        results = self.rank(snapshot, query_embedding, top_k, file_type)
        logger.info(
            f"Retrieved {len(results)} of {len(snapshot)} records"
            + (f" (type={file_type})" if file_type else ""),
            extra={"top_k": top_k, "file_type": file_type}
        )
        return results

    @staticmethod
    def rank(
        snapshot: StoreSnapshot,
        query_embedding: Sequence[float],
        top_k: int,
        file_type: Optional[str] = None
    ) -> List[ScoredRecord]:
        """Score, filter, sort and cut a snapshot against an already-embedded query."""
        if not snapshot.records:
            return []

        query_vector = np.asarray(query_embedding, dtype=np.float64)
        if query_vector.shape != (snapshot.dimension,):
            raise ValueError(
                f"Query embedding has dimension {query_vector.shape[0]}, "
                f"store has {snapshot.dimension}"
            )

        indices = np.arange(len(snapshot.records))
        if file_type is not None:
            indices = np.array(
                [i for i, record in enumerate(snapshot.records) if record.metadata.file_type == file_type],
                dtype=np.int64
            )
            if indices.size == 0:
                return []

        with np.errstate(divide="ignore", invalid="ignore"):
            dots = snapshot.matrix[indices] @ query_vector
            similarities = dots / (snapshot.norms[indices] * np.linalg.norm(query_vector))

        # Stable sort on negated scores keeps store order for ties; NaN goes last
        sort_keys = np.where(np.isnan(similarities), np.inf, -similarities)
        order = np.argsort(sort_keys, kind="stable")[:top_k]

        return [
            ScoredRecord(record=snapshot.records[indices[i]], similarity=float(similarities[i]))
            for i in order
        ]

    def find_by_path(self, path_fragment: str) -> List[VectorRecord]:
        """Stored records whose file path contains ``path_fragment``, in store order."""
        return [
            record for record in self.snapshot.records
            if path_fragment in record.metadata.file_path
        ]
