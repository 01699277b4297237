"""Data models for the codebase RAG assistant."""
from .source_file import SourceFile
from .chunk import Chunk, ChunkMetadata, VectorRecord, ScoredRecord, IndexResult
from .index_metadata import IndexMetadata
from .conversation import ChatMessage, Conversation, Turn

__all__ = [
    "SourceFile",
    "Chunk",
    "ChunkMetadata",
    "VectorRecord",
    "ScoredRecord",
    "IndexResult",
    "IndexMetadata",
    "ChatMessage",
    "Conversation",
    "Turn",
]
