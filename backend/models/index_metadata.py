"""Metadata summary written next to the vector store."""
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class IndexMetadata:
    """Summary of the last indexing run."""
    indexed_at: str  # ISO-8601, UTC
    total_files: int
    total_chunks: int
    file_types: Dict[str, int] = field(default_factory=dict)
    config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "indexedAt": self.indexed_at,
            "totalFiles": self.total_files,
            "totalChunks": self.total_chunks,
            "fileTypes": dict(self.file_types),
            "config": self.config,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexMetadata":
        return cls(
            indexed_at=data["indexedAt"],
            total_files=int(data["totalFiles"]),
            total_chunks=int(data["totalChunks"]),
            file_types=dict(data.get("fileTypes", {})),
            config=data.get("config", {}),
        )
