"""Chunk and vector record data models."""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class ChunkMetadata:
    """Where a chunk came from. Serialized with the camelCase keys of the store file."""
    file_path: str  # relative to the project root
    file_type: str
    chunk_index: int  # 0-based, local to its file
    lines: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path,
            "type": self.file_type,
            "chunkIndex": self.chunk_index,
            "lines": self.lines,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkMetadata":
        return cls(
            file_path=data["filePath"],
            file_type=data["type"],
            chunk_index=int(data["chunkIndex"]),
            lines=int(data["lines"]),
        )


@dataclass(frozen=True)
class Chunk:
    """A trimmed slice of a source file, the unit of embedding."""
    content: str
    metadata: ChunkMetadata

    @property
    def file_path(self) -> str:
        return self.metadata.file_path

    @property
    def file_type(self) -> str:
        return self.metadata.file_type

    @property
    def chunk_index(self) -> int:
        return self.metadata.chunk_index

    @property
    def line_count(self) -> int:
        return self.metadata.lines


@dataclass(frozen=True)
class VectorRecord:
    """Persisted unit of the vector store."""
    id: str  # Format: "chunk_{n}", global across one indexing run
    embedding: List[float]
    metadata: ChunkMetadata
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "embedding": list(self.embedding),
            "metadata": self.metadata.to_dict(),
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorRecord":
        return cls(
            id=data["id"],
            embedding=[float(x) for x in data["embedding"]],
            metadata=ChunkMetadata.from_dict(data["metadata"]),
            content=data["content"],
        )


@dataclass(frozen=True)
class ScoredRecord:
    """Vector record with its cosine similarity to a query."""
    record: VectorRecord
    similarity: float  # -1.0 to 1.0, NaN for zero-norm embeddings

    @property
    def metadata(self) -> ChunkMetadata:
        return self.record.metadata

    @property
    def content(self) -> str:
        return self.record.content

    def to_dict(self, include_embedding: bool = False) -> Dict[str, Any]:
        data = self.record.to_dict()
        if not include_embedding:
            data.pop("embedding")
        # JSON has no NaN
        data["similarity"] = None if math.isnan(self.similarity) else self.similarity
        return data


@dataclass
class IndexResult:
    """Outcome of one indexing run."""
    file_count: int
    chunk_count: int
    skipped_files: List[str] = field(default_factory=list)
