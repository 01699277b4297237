"""Line-based chunking engine with file headers and line overlap."""
import logging
import posixpath
from typing import List

from models.chunk import Chunk, ChunkMetadata
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

# Extension -> file type reported in chunk metadata
FILE_TYPES = {
    ".ts": "typescript",
    ".js": "javascript",
    ".tsx": "react-typescript",
    ".jsx": "react-javascript",
    ".sql": "sql",
    ".py": "python",
    ".md": "markdown",
    ".txt": "text",
    ".json": "json",
    ".yaml": "yaml",
    ".toml": "toml",
}

CODE_EXTENSIONS = {".ts", ".js", ".tsx", ".jsx"}
MARKDOWN_EXTENSIONS = {".md"}

# Assumed average line width when turning the character overlap into lines
OVERLAP_CHARS_PER_LINE = 50


def get_file_type(file_path: str) -> str:
    """Map a path to its file type, "unknown" for unrecognized extensions."""
    _, ext = posixpath.splitext(file_path.replace("\\", "/"))
    return FILE_TYPES.get(ext, "unknown")


class ChunkingEngine:
    """Segments source files into overlapping, size-bounded chunks of whole lines."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk size in characters
            chunk_overlap: Overlap between chunks in characters, carried as whole lines
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap cannot be negative")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @property
    def overlap_lines(self) -> int:
        """Number of trailing lines carried into the next chunk."""
        return self.chunk_overlap // OVERLAP_CHARS_PER_LINE

    def preprocess(self, content: str, file_path: str) -> str:
        """
        Prepend a header naming the file for code and Markdown files.

        Empty files stay empty so they produce no chunks.
        """
        if not content.strip():
            return content

        _, ext = posixpath.splitext(file_path.replace("\\", "/"))
        if ext in CODE_EXTENSIONS:
            return f"// File: {file_path}\n{content}"
        if ext in MARKDOWN_EXTENSIONS:
            return f"# Document: {file_path}\n{content}"
        return content

    def chunk_file(self, content: str, file_path: str) -> List[Chunk]:
        """
        Split a file into chunks.

        Lines are accumulated until the next one would push the buffer past
        ``chunk_size``; the buffer is then emitted and the next buffer is
        seeded with its trailing ``overlap_lines`` lines. A line is never
        split, so a single line longer than ``chunk_size`` becomes an
        oversized chunk.

        Args:
            content: Raw file text
            file_path: Path relative to the project root

        Returns:
            Chunks in file order with 0-based ``chunk_index``
        """
        file_type = get_file_type(file_path)
        processed = self.preprocess(content, file_path)

        chunks: List[Chunk] = []
        buffer = ""
        # Length of the buffer plus one for the newline that follows it
        current_size = 0

        for line in processed.split("\n"):
            if buffer and current_size + len(line) > self.chunk_size:
                self._flush(buffer, file_path, file_type, chunks)

                tail = buffer.split("\n")[-self.overlap_lines:] if self.overlap_lines else []
                buffer = "\n".join(tail + [line])
                current_size = len(buffer) + 1
            else:
                buffer = f"{buffer}\n{line}" if buffer else line
                current_size += len(line) + 1

        if buffer.strip():
            self._flush(buffer, file_path, file_type, chunks)

        logger.debug(f"Chunked {file_path} into {len(chunks)} chunks")
        return chunks

    @staticmethod
    def _flush(buffer: str, file_path: str, file_type: str, chunks: List[Chunk]) -> None:
        content = buffer.strip()
        if not content:
            # Whitespace-only runs carry no content worth embedding
            return

        chunks.append(Chunk(
            content=content,
            metadata=ChunkMetadata(
                file_path=file_path,
                file_type=file_type,
                chunk_index=len(chunks),
                lines=len(buffer.split("\n")),
            ),
        ))
