from statement_worker.logging.logger import Log
from statement_worker.processor.exceptions import DocumentAlreadyClaimedError
from statement_worker.processor.processor import Processor
from statement_worker.worker.guard import ProcessingGuard


class DocumentRunner:
    """Run one document, catch exceptions so the poll loop keeps going."""

    def __init__(self, processor: Processor, guard: ProcessingGuard) -> None:
        self._processor = processor
        self._guard = guard

    def run(self, document_id: str) -> bool:
        """Process a single document with error handling.

        Returns True when the pipeline ran to completion.
        """
        with self._guard.hold(document_id) as acquired:
            if not acquired:
                Log.info(f"Document {document_id} is already being processed, skipping")
                return False
            try:
                self._processor.process(document_id)
            except DocumentAlreadyClaimedError as exc:
                Log.info(f"Skipping document {document_id}: {exc}")
                return False
            except Exception as exc:
                Log.error(f"Document {document_id} failed: {exc}")
                return False
            Log.info(f"Document {document_id} processed successfully")
            return True
