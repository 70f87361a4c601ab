from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from statement_worker.database.models import DocumentRecord
from statement_worker.database.repositories.document_repository import DocumentRepository
from statement_worker.database.repositories.transaction_repository import TransactionRepository
from statement_worker.extraction.models import ExtractedTransaction
from statement_worker.processor.exceptions import (
    DocumentNotFoundError,
    ExtractionFailedError,
    InvalidStatusTransitionError,
    NothingToRetryError,
)
from statement_worker.processor.models import ChunkOutcome, OrchestrationResult, StatementDocument
from statement_worker.processor.month_retry import MonthRetryService
from statement_worker.processor.orchestrator import ChunkExtractionOrchestrator
from statement_worker.processor.state import DocumentStatus
from statement_worker.statement.models import StatementPeriod

_TEXT = "Statement period 01/09/2023 to 30/11/2023\n05/10/2023 TESCO 10.00"


def _make_record(status: str = "complete", **metadata: object) -> DocumentRecord:
    bag: dict[str, object] = {
        "pipeline": "text",
        "failed_months": ["2023-10", "2023-11"],
        "extracted_text": _TEXT,
        "transaction_count": 4,
        "chunk_results": [
            {"label": "2023-09", "status": "success", "transaction_count": 4},
            {"label": "2023-10", "status": "failed", "error": "timeout"},
            {"label": "2023-11", "status": "failed", "error": "timeout"},
        ],
        "balance_checks": [{"label": "2023-09", "corrections": [{"index": 0}]}],
    }
    bag.update(metadata)
    return DocumentRecord(
        id="doc-1",
        organization_id="org-1",
        client_id="client-1",
        storage_path="org-1/q3.pdf",
        mime_type="application/pdf",
        file_name="q3.pdf",
        status=status,
        metadata=bag,
    )


def _make_document() -> StatementDocument:
    return StatementDocument(
        id="doc-1",
        organization_id="org-1",
        client_id="client-1",
        storage_path="org-1/q3.pdf",
        mime_type="application/pdf",
        file_name="q3.pdf",
        status=DocumentStatus.COMPLETE,
    )


def _outcome(label: str, start: str, end: str, succeeded: bool = True, count: int = 1) -> ChunkOutcome:
    return ChunkOutcome(
        label=label,
        start_date=start,
        end_date=end,
        succeeded=succeeded,
        transaction_count=count if succeeded else 0,
        error=None if succeeded else "timeout",
    )


def _make_result(*outcomes: ChunkOutcome) -> OrchestrationResult:
    return OrchestrationResult(
        transactions=[
            ExtractedTransaction(
                date=date(2023, 10, 5),
                merchant="TESCO",
                amount=Decimal("10.00"),
                type="debit",
                extraction_confidence=0.9,
            )
        ],
        chunked=True,
        chunk_count=len(outcomes),
        period=StatementPeriod(date(2023, 9, 1), date(2023, 11, 30)),
        period_source="detected",
        outcomes=list(outcomes),
    )


class _Service:
    def __init__(self, record: DocumentRecord | None) -> None:
        self.doc_repo = MagicMock(spec=DocumentRepository)
        self.txn_repo = MagicMock(spec=TransactionRepository)
        self.orchestrator = MagicMock(spec=ChunkExtractionOrchestrator)
        self.doc_repo.find_record.return_value = record
        self.doc_repo.find_by_id.return_value = _make_document()
        self.txn_repo.count_for_document.return_value = 5
        self.service = MonthRetryService(self.doc_repo, self.txn_repo, self.orchestrator)


class TestRetryRecoversMonths:
    def test_all_months_recovered_clears_message(self) -> None:
        s = _Service(_make_record(failed_months=["2023-10"]))
        s.orchestrator.run_months.return_value = _make_result(
            _outcome("2023-10", "2023-10-01", "2023-10-31")
        )

        metadata = s.service.retry("doc-1")

        s.orchestrator.run_months.assert_called_once_with(_TEXT, ["2023-10"])
        document, start, end, rows = s.txn_repo.replace_in_range.call_args.args
        assert document.id == "doc-1"
        assert (start, end) == (date(2023, 10, 1), date(2023, 10, 31))
        assert [txn.merchant for txn in rows] == ["TESCO"]
        s.doc_repo.update_metadata.assert_called_once_with("doc-1", metadata, error_message=None)
        assert metadata["failed_months"] == []
        assert metadata["transaction_count"] == 5
        assert "months_retried_at" in metadata

    def test_still_failing_month_stays_listed(self) -> None:
        s = _Service(_make_record())
        s.orchestrator.run_months.return_value = _make_result(
            _outcome("2023-10", "2023-10-01", "2023-10-31"),
            _outcome("2023-11", "2023-11-01", "2023-11-30", succeeded=False),
        )

        metadata = s.service.retry("doc-1")

        assert s.txn_repo.replace_in_range.call_count == 1
        assert metadata["failed_months"] == ["2023-11"]
        message = s.doc_repo.update_metadata.call_args.kwargs["error_message"]
        assert message.startswith("Partial extraction: 2023-11 could not be processed")

    def test_chunk_results_replaced_by_label(self) -> None:
        s = _Service(_make_record(failed_months=["2023-10"]))
        s.orchestrator.run_months.return_value = _make_result(
            _outcome("2023-10", "2023-10-01", "2023-10-31")
        )

        metadata = s.service.retry("doc-1")

        assert [r["label"] for r in metadata["chunk_results"]] == ["2023-09", "2023-10", "2023-11"]
        assert metadata["chunk_results"][0]["transaction_count"] == 4
        assert metadata["chunk_results"][1]["status"] == "success"

    def test_existing_balance_corrections_are_kept(self) -> None:
        s = _Service(_make_record(failed_months=["2023-10"]))
        s.orchestrator.run_months.return_value = _make_result(
            _outcome("2023-10", "2023-10-01", "2023-10-31")
        )

        metadata = s.service.retry("doc-1")

        assert metadata["balance_corrections"] == 1


class TestRetryRefusals:
    def test_missing_document(self) -> None:
        s = _Service(None)

        with pytest.raises(DocumentNotFoundError):
            s.service.retry("doc-1")

    def test_document_not_complete(self) -> None:
        s = _Service(_make_record(status="error"))

        with pytest.raises(InvalidStatusTransitionError, match="is error"):
            s.service.retry("doc-1")

        s.orchestrator.run_months.assert_not_called()

    def test_no_failed_months(self) -> None:
        s = _Service(_make_record(failed_months=[]))

        with pytest.raises(NothingToRetryError, match="no failed months"):
            s.service.retry("doc-1")

    def test_no_cached_text(self) -> None:
        s = _Service(_make_record(extracted_text=None))

        with pytest.raises(NothingToRetryError, match="no cached text"):
            s.service.retry("doc-1")

    def test_total_failure_leaves_document_untouched(self) -> None:
        s = _Service(_make_record())
        s.orchestrator.run_months.side_effect = ExtractionFailedError("every chunk failed")

        with pytest.raises(ExtractionFailedError):
            s.service.retry("doc-1")

        s.txn_repo.replace_in_range.assert_not_called()
        s.doc_repo.update_metadata.assert_not_called()
