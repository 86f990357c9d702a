from abc import ABC, abstractmethod
from pathlib import Path

from docflow.processor.exceptions import DocumentNotFoundError, FileReadError


class BaseDocumentStorage(ABC):
    """Read-only access to stored document files. Safe for concurrent use."""

    @abstractmethod
    def exists(self, file_path: str) -> bool: ...

    @abstractmethod
    def stat(self, file_path: str) -> int:
        """Return the stored size in bytes."""

    @abstractmethod
    def read_all(self, file_path: str) -> bytes: ...


class LocalDocumentStorage(BaseDocumentStorage):
    """Resolves a record's relative file path under a files root and reads it."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def exists(self, file_path: str) -> bool:
        try:
            return self._resolve_path(file_path).is_file()
        except DocumentNotFoundError:
            return False

    def stat(self, file_path: str) -> int:
        path = self._resolve_path(file_path)
        try:
            return path.stat().st_size
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(f"File not found at path: {path}") from exc
        except OSError as exc:
            raise FileReadError(f"Cannot stat {path}: {exc}") from exc

    def read_all(self, file_path: str) -> bytes:
        """Read document bytes from disk.

        Raises:
            DocumentNotFoundError: if the file does not exist at the resolved path.
            FileReadError: on any other OS error.
        """
        path = self._resolve_path(file_path)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(f"File not found at path: {path}") from exc
        except OSError as exc:
            raise FileReadError(f"Cannot read {path}: {exc}") from exc

    def _resolve_path(self, file_path: str) -> Path:
        root = self._files_root.resolve()
        path = (root / file_path.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise DocumentNotFoundError(f"Path escapes files root: {file_path}")
        return path
