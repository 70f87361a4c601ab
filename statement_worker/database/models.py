from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any


@dataclass
class QueuedDocument:
    """A row picked up by the poller's queued-documents query."""

    id: str
    created_at: datetime | None = None


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: str
    organization_id: str
    client_id: str
    storage_path: str
    mime_type: str | None
    file_name: str
    status: str
    file_hash: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TransactionRecord:
    """Represents a row from the transactions table."""

    id: str
    document_id: str
    date: date
    merchant: str
    amount: Decimal
    type: str
    status: str
    description: str | None = None
    balance: Decimal | None = None
    extraction_confidence: float | None = None
