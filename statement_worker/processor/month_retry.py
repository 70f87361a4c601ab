"""Re-extraction of the months a completed document is missing.

A partially extracted document keeps its normalized text and the labels
of its failed months in ``metadata``. Retrying runs only those months
again and swaps their transactions in place; months that already
succeeded are never touched.
"""

from datetime import date, datetime, timezone
from typing import Any

from statement_worker.database.repositories.document_repository import DocumentRepository
from statement_worker.database.repositories.transaction_repository import TransactionRepository
from statement_worker.logging.logger import Log
from statement_worker.processor.exceptions import (
    DocumentNotFoundError,
    InvalidStatusTransitionError,
    NothingToRetryError,
)
from statement_worker.processor.models import ChunkOutcome
from statement_worker.processor.orchestrator import ChunkExtractionOrchestrator
from statement_worker.processor.state import DocumentStatus
from statement_worker.processor.steps import partial_extraction_message


class MonthRetryService:
    def __init__(
        self,
        doc_repo: DocumentRepository,
        txn_repo: TransactionRepository,
        orchestrator: ChunkExtractionOrchestrator,
    ) -> None:
        self._doc_repo = doc_repo
        self._txn_repo = txn_repo
        self._orchestrator = orchestrator

    def retry(self, document_id: str) -> dict[str, Any]:
        """Re-extract the failed months of ``document_id`` and return the new metadata.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
            InvalidStatusTransitionError: if the document is not complete.
            NothingToRetryError: if no months failed or no text was cached.
            ExtractionFailedError: if every retried month fails again.
        """
        record = self._doc_repo.find_record(document_id)
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        if record.status != DocumentStatus.COMPLETE.value:
            raise InvalidStatusTransitionError(
                f"Document {document_id} is {record.status}, only complete documents retry months"
            )

        metadata = dict(record.metadata)
        failed: list[str] = list(metadata.get("failed_months") or [])
        text = metadata.get("extracted_text")
        if not failed:
            raise NothingToRetryError(f"Document {document_id} has no failed months")
        if not text:
            raise NothingToRetryError(f"Document {document_id} has no cached text to retry from")

        Log.info(f"Retrying months of document {document_id}", months=",".join(failed))
        result = self._orchestrator.run_months(text, failed)

        document = self._doc_repo.find_by_id(document_id)
        recovered = [outcome for outcome in result.outcomes if outcome.succeeded]
        for outcome in recovered:
            start, end = _bounds(outcome)
            rows = [txn for txn in result.transactions if start <= txn.date <= end]
            self._txn_repo.replace_in_range(document, start, end, rows)
            Log.info(f"Recovered {len(rows)} transactions", document_id=document_id, chunk=outcome.label)

        recovered_labels = {outcome.label for outcome in recovered}
        remaining = [label for label in failed if label not in recovered_labels]
        metadata.update(
            failed_months=remaining,
            chunk_results=_merge_by_label(
                metadata.get("chunk_results") or [],
                [outcome.to_dict() for outcome in result.outcomes],
            ),
            balance_checks=_merge_by_label(
                metadata.get("balance_checks") or [],
                [check.to_dict() for check in result.balance_checks],
            ),
            duplicates_removed=int(metadata.get("duplicates_removed") or 0) + result.duplicates_removed,
            transaction_count=self._txn_repo.count_for_document(document_id),
            months_retried_at=datetime.now(timezone.utc).isoformat(),
        )
        metadata["balance_corrections"] = sum(
            len(check.get("corrections") or []) for check in metadata["balance_checks"]
        )

        error_message = partial_extraction_message(remaining) if remaining else None
        self._doc_repo.update_metadata(document_id, metadata, error_message=error_message)
        if remaining:
            Log.warning(f"Document {document_id} still has gaps: {error_message}")
        else:
            Log.info(f"Document {document_id} has no failed months left")
        return metadata


def _bounds(outcome: ChunkOutcome) -> tuple[date, date]:
    if outcome.start_date is None or outcome.end_date is None:
        raise ValueError(f"Month outcome {outcome.label} has no date range")
    return date.fromisoformat(outcome.start_date), date.fromisoformat(outcome.end_date)


def _merge_by_label(
    existing: list[dict[str, Any]],
    updates: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Replace entries sharing a label, keep the original order, append new labels."""
    by_label = {entry["label"]: entry for entry in updates}
    merged = [by_label.pop(entry.get("label"), entry) for entry in existing]
    return merged + list(by_label.values())
