from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class ExtractedTransaction:
    """One statement line item returned by the extraction capability.

    ``amount`` is always positive; ``type`` carries the polarity.
    """

    date: date
    merchant: str
    amount: Decimal
    type: str
    description: str | None = None
    balance: Decimal | None = None
    category: str | None = None
    category_confidence: float | None = None
    vat_amount: Decimal | None = None
    vat_rate: Decimal | None = None
    extraction_confidence: float = 0.0

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.type == "debit" else self.amount


@dataclass(frozen=True)
class ExtractionRequest:
    """Input for one extraction call: a text chunk or a batch of page images."""

    text: str = ""
    media_type: str = "text/plain"
    images: list[str] = field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None
    chunk_index: int = 0
    chunk_total: int = 1
    label: str = ""

    @property
    def is_bounded(self) -> bool:
        return self.start_date is not None and self.end_date is not None
