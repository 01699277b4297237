"""Source file data model."""
from dataclasses import dataclass


@dataclass
class SourceFile:
    """A file read from disk at index time. Never persisted."""
    path: str  # relative to the project root, forward slashes
    content: str
    file_type: str
