import time

from statement_worker.config.settings import Settings
from statement_worker.database.models import QueuedDocument
from statement_worker.database.repositories.document_repository import DocumentRepository
from statement_worker.logging.logger import Log
from statement_worker.worker.document_runner import DocumentRunner


class Worker:
    """Poll loop: fetch queued batch -> process sequentially -> sleep."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        document_runner: DocumentRunner,
        settings: Settings,
    ) -> None:
        self._doc_repo = doc_repo
        self._document_runner = document_runner
        self._settings = settings

    def run(self, max_ticks: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_ticks is set, stop after that many polls (for testing).
        """
        Log.info(
            "Worker started, polling for queued documents",
            interval=self._settings.poll_interval_seconds,
            batch=self._settings.poll_batch_size,
        )
        ticks = 0
        try:
            while True:
                self.tick()
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                time.sleep(self._settings.poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def tick(self) -> int:
        """Process one batch of queued documents. Returns how many were attempted."""
        batch = self._fetch_queued()
        if not batch:
            Log.debug("No queued documents")
            return 0
        Log.info(f"Found {len(batch)} queued documents")
        for queued in batch:
            self._document_runner.run(queued.id)
        return len(batch)

    def _fetch_queued(self) -> list[QueuedDocument]:
        """Fetch the next batch. Gracefully handle DB errors."""
        try:
            return self._doc_repo.list_queued(self._settings.poll_batch_size)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return []
