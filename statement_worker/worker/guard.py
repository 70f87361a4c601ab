import threading
from collections.abc import Generator
from contextlib import contextmanager


class ProcessingGuard:
    """In-process set of document IDs currently being worked on.

    Keeps one worker process from starting a second attempt on a document
    whose first attempt is still running. It does not coordinate across
    processes; the conditional claim in the repository covers that.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[str] = set()

    def try_acquire(self, document_id: str) -> bool:
        with self._lock:
            if document_id in self._active:
                return False
            self._active.add(document_id)
            return True

    def release(self, document_id: str) -> None:
        with self._lock:
            self._active.discard(document_id)

    def is_active(self, document_id: str) -> bool:
        with self._lock:
            return document_id in self._active

    @contextmanager
    def hold(self, document_id: str) -> Generator[bool, None, None]:
        """Yield whether the ID was acquired; release on exit if it was."""
        acquired = self.try_acquire(document_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(document_id)
