"""Source file discovery and loading for indexing."""
import fnmatch
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from models.source_file import SourceFile
from services.chunking_engine import get_file_type
from config import PROJECT_ROOT, SUPPORTED_EXTENSIONS, EXCLUDE_PATTERNS, MAX_FILE_SIZE_BYTES

logger = logging.getLogger(__name__)


class SourceLoader:
    """Finds source files under a project root and reads their text."""

    def __init__(
        self,
        project_root: Path = PROJECT_ROOT,
        supported_extensions: Optional[Iterable[str]] = None,
        exclude_patterns: Optional[Iterable[str]] = None,
        max_file_size: int = MAX_FILE_SIZE_BYTES,
        encoding: str = "utf-8"
    ):
        """
        Initialize SourceLoader.

        Args:
            project_root: Directory to scan; chunk paths are relative to it
            supported_extensions: Extensions to collect, e.g. ".ts"
            exclude_patterns: Directory names (or fnmatch patterns) to skip anywhere in the tree
            max_file_size: Files larger than this many bytes are skipped
            encoding: Text encoding used to read files
        """
        self.project_root = Path(project_root).resolve()
        self.supported_extensions = list(
            SUPPORTED_EXTENSIONS if supported_extensions is None else supported_extensions
        )
        self.exclude_patterns = list(
            EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns
        )
        self.max_file_size = max_file_size
        self.encoding = encoding

    def collect_files(self) -> List[Path]:
        """
        Enumerate files matching the supported extensions.

        A file reachable through more than one pattern is returned once.
        The result is sorted so chunk ids are stable across runs.

        Returns:
            Absolute paths of matching files
        """
        if not self.project_root.is_dir():
            logger.error(f"Project root not found: {self.project_root}")
            return []

        found = set()
        for ext in self.supported_extensions:
            for path in self.project_root.rglob(f"*{ext}"):
                if path.is_file() and not self._is_excluded(path):
                    found.add(path)

        files = sorted(found)
        logger.info(f"Found {len(files)} files under {self.project_root}")
        return files

    def _is_excluded(self, path: Path) -> bool:
        relative_dirs = path.relative_to(self.project_root).parts[:-1]
        return any(
            fnmatch.fnmatch(part, pattern)
            for part in relative_dirs
            for pattern in self.exclude_patterns
        )

    def relative_path(self, path: Path) -> str:
        return path.relative_to(self.project_root).as_posix()

    def load_file(self, path: Path) -> SourceFile:
        """
        Read one file.

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not valid text in ``encoding``
            ValueError: If the file exceeds ``max_file_size``
        """
        size = path.stat().st_size
        if size > self.max_file_size:
            raise ValueError(f"File too large ({size} bytes > {self.max_file_size})")

        relative = self.relative_path(path)
        content = path.read_text(encoding=self.encoding)
        return SourceFile(path=relative, content=content, file_type=get_file_type(relative))

    def load_files(self, paths: Iterable[Path]) -> Tuple[List[SourceFile], List[str]]:
        """
        Read every file, skipping the ones that fail.

        Returns:
            Tuple of (loaded files, relative paths that were skipped)
        """
        loaded: List[SourceFile] = []
        skipped: List[str] = []

        for path in paths:
            try:
                loaded.append(self.load_file(path))
            except (OSError, UnicodeDecodeError, ValueError) as e:
                relative = self.relative_path(path)
                logger.warning(
                    f"Skipping {relative}: {str(e)}",
                    extra={"file_path": relative}
                )
                skipped.append(relative)

        logger.info(f"Loaded {len(loaded)} files, skipped {len(skipped)}")
        return loaded, skipped
