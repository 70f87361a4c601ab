"""Validates raw parsed JSON into extracted transactions."""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from statement_worker.extraction.exceptions import ExtractionValidationError
from statement_worker.extraction.models import ExtractedTransaction
from statement_worker.logging.logger import Log
from statement_worker.statement.dates import parse_date

_MAX_TRANSACTIONS = 2000
_VALID_TYPES = frozenset({"debit", "credit"})


def validate_and_build(data: dict[str, Any]) -> list[ExtractedTransaction]:
    """Validate a parsed provider response and build transactions.

    The response shape is strict: a missing or malformed ``transactions``
    list fails the whole call. Individual malformed items are dropped with
    a warning so one unreadable row does not discard a month of data.

    Raises:
        ExtractionValidationError: if the response shape is invalid.
    """
    raw = data.get("transactions")
    if not isinstance(raw, list):
        raise ExtractionValidationError("'transactions' must be a list")
    if len(raw) > _MAX_TRANSACTIONS:
        raise ExtractionValidationError(
            f"Too many transactions: {len(raw)} (max {_MAX_TRANSACTIONS})"
        )

    transactions: list[ExtractedTransaction] = []
    for index, item in enumerate(raw):
        try:
            transactions.append(build_transaction(item, index))
        except ExtractionValidationError as exc:
            Log.warning(f"Dropping invalid transaction: {exc}")
    return transactions


def build_transaction(raw: Any, index: int) -> ExtractedTransaction:
    if not isinstance(raw, dict):
        raise ExtractionValidationError(f"Transaction at index {index} must be an object")

    txn_date = _build_date(raw.get("date"), index)
    merchant = raw.get("merchant")
    if not merchant or not isinstance(merchant, str):
        raise ExtractionValidationError(
            f"Transaction at index {index}: 'merchant' must be a non-empty string"
        )
    amount = _build_decimal(raw.get("amount"), "amount", index)
    if amount is None:
        raise ExtractionValidationError(f"Transaction at index {index}: 'amount' is required")
    txn_type = _build_type(raw.get("type"), amount, index)

    return ExtractedTransaction(
        date=txn_date,
        merchant=merchant.strip(),
        amount=abs(amount),
        type=txn_type,
        description=_optional_str(raw.get("description"), "description", index),
        balance=_build_decimal(raw.get("balance"), "balance", index),
        category=_optional_str(raw.get("category"), "category", index),
        category_confidence=_build_confidence(raw.get("category_confidence"), index),
        vat_amount=_build_decimal(raw.get("vat_amount"), "vat_amount", index),
        vat_rate=_build_decimal(raw.get("vat_rate"), "vat_rate", index),
        extraction_confidence=_build_confidence(raw.get("extraction_confidence"), index) or 0.0,
    )


def _build_date(raw: Any, index: int) -> date:
    if not isinstance(raw, str) or not raw.strip():
        raise ExtractionValidationError(
            f"Transaction at index {index}: 'date' must be a non-empty string"
        )
    try:
        return date.fromisoformat(raw.strip()[:10])
    except ValueError:
        parsed = parse_date(raw)
    if parsed is None:
        raise ExtractionValidationError(
            f"Transaction at index {index}: unparseable date {raw!r}"
        )
    return parsed


def _build_type(raw: Any, amount: Decimal, index: int) -> str:
    if raw is None:
        return "debit" if amount < 0 else "credit"
    if not isinstance(raw, str) or raw.lower() not in _VALID_TYPES:
        raise ExtractionValidationError(
            f"Transaction at index {index}: 'type' must be one of "
            f"{sorted(_VALID_TYPES)}, got {raw!r}"
        )
    return raw.lower()


def _build_decimal(raw: Any, field: str, index: int) -> Decimal | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise ExtractionValidationError(
            f"Transaction at index {index}: '{field}' must be a number or null"
        )
    try:
        # str() first so floats keep their printed digits (0.1 -> "0.1").
        return Decimal(str(raw).replace(",", "").replace("£", "").strip())
    except InvalidOperation as exc:
        raise ExtractionValidationError(
            f"Transaction at index {index}: '{field}' is not a number: {raw!r}"
        ) from exc


def _build_confidence(raw: Any, index: int) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ExtractionValidationError(
            f"Transaction at index {index}: confidence must be a number or null"
        )
    return max(0.0, min(1.0, float(raw)))


def _optional_str(raw: Any, field: str, index: int) -> str | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ExtractionValidationError(
            f"Transaction at index {index}: '{field}' must be a string or null"
        )
    return raw.strip() or None
