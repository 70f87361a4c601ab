from pathlib import Path

from statement_worker.processor.exceptions import FileReadError, UnsupportedStorageDiskError
from statement_worker.processor.models import StatementDocument


def document_file_path(files_root: Path, storage_path: str) -> Path:
    """Build path to document file: {files_root}/{storage_path}"""
    return files_root / storage_path.lstrip("/")


class FileLoader:
    """Resolves a document's storage path in the blob store and reads its bytes."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def load(self, document: StatementDocument) -> bytes:
        """Read document bytes from disk.

        Raises:
            FileNotFoundError: if the file does not exist at resolved path.
            UnsupportedStorageDiskError: if storage_path escapes the files root.
            FileReadError: if the file exists but cannot be read.
        """
        path = self._resolve_path(document)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Failed to read {path}: {exc}") from exc

    def _resolve_path(self, document: StatementDocument) -> Path:
        if not document.storage_path.strip():
            raise UnsupportedStorageDiskError(f"Document {document.id} has no storage path")
        root = self._files_root.resolve()
        path = document_file_path(root, document.storage_path).resolve()
        if not path.is_relative_to(root):
            raise UnsupportedStorageDiskError(
                f"storage_path '{document.storage_path}' is outside the files root"
            )
        return path
