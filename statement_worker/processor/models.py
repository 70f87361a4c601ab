from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from statement_worker.extraction.models import ExtractedTransaction
from statement_worker.processor.balance import BalanceCheck
from statement_worker.processor.state import DocumentStatus
from statement_worker.statement.models import StatementPeriod


class DocumentFormat(StrEnum):
    CSV = "csv"
    SPREADSHEET = "spreadsheet"
    PDF = "pdf"


class Pipeline(StrEnum):
    """Which extraction path produced a document's transactions."""

    DUPLICATE = "duplicate"
    TABULAR = "tabular"
    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class StatementDocument:
    """Domain model for an uploaded statement (subset of DB columns)."""

    id: str
    organization_id: str
    client_id: str
    storage_path: str
    mime_type: str
    file_name: str
    status: DocumentStatus
    file_hash: str | None = None


@dataclass(frozen=True)
class NormalizedDocument:
    """Output of format classification and text normalization.

    ``text`` is empty for image-based PDFs, which are extracted from
    rendered pages instead.
    """

    format: DocumentFormat
    text: str
    is_image_based: bool = False
    page_count: int | None = None


@dataclass(frozen=True)
class ChunkOutcome:
    """Result of one extraction call within a processing attempt."""

    label: str
    start_date: str | None
    end_date: str | None
    succeeded: bool
    transaction_count: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "status": "success" if self.succeeded else "failed",
            "transaction_count": self.transaction_count,
            "error": self.error,
        }


@dataclass
class OrchestrationResult:
    """Merged outcome of all extraction calls for one document."""

    transactions: list[ExtractedTransaction]
    chunked: bool
    chunk_count: int
    period: StatementPeriod | None = None
    period_source: str | None = None
    outcomes: list[ChunkOutcome] = field(default_factory=list)
    duplicates_removed: int = 0
    balance_checks: list[BalanceCheck] = field(default_factory=list)

    @property
    def failed_labels(self) -> list[str]:
        return [outcome.label for outcome in self.outcomes if not outcome.succeeded]


@dataclass
class ProcessingMetadata:
    """The document's ``metadata`` bag, rewritten wholesale on every attempt."""

    file_hash: str | None = None
    pipeline: str | None = None
    chunked: bool = False
    chunk_count: int = 0
    period: dict[str, str] | None = None
    period_source: str | None = None
    failed_months: list[str] = field(default_factory=list)
    chunk_results: list[dict[str, Any]] = field(default_factory=list)
    page_count: int | None = None
    is_image_based: bool | None = None
    transaction_count: int = 0
    duplicates_removed: int = 0
    balance_checks: list[dict[str, Any]] = field(default_factory=list)
    balance_corrections: int = 0
    copied_from: str | None = None
    extracted_text: str | None = None
    completed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_orchestration(
        cls,
        result: OrchestrationResult,
        *,
        file_hash: str | None,
        pipeline: str,
        normalized: NormalizedDocument | None,
        text_limit: int,
        completed_at: datetime,
    ) -> "ProcessingMetadata":
        extracted_text = None
        if normalized is not None and normalized.text:
            extracted_text = normalized.text[:text_limit]
        return cls(
            file_hash=file_hash,
            pipeline=pipeline,
            chunked=result.chunked,
            chunk_count=result.chunk_count,
            period=result.period.to_dict() if result.period else None,
            period_source=result.period_source,
            failed_months=result.failed_labels,
            chunk_results=[outcome.to_dict() for outcome in result.outcomes],
            page_count=normalized.page_count if normalized else None,
            is_image_based=normalized.is_image_based if normalized else None,
            transaction_count=len(result.transactions),
            duplicates_removed=result.duplicates_removed,
            balance_checks=[check.to_dict() for check in result.balance_checks],
            balance_corrections=sum(len(check.corrections) for check in result.balance_checks),
            extracted_text=extracted_text,
            completed_at=completed_at.isoformat(),
        )
