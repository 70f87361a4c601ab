"""Running-balance checks on one chunk of extracted transactions.

Each transaction that carries a balance should satisfy
``previous balance +/- amount == balance``. A link that does not is a
break; where the balances are trustworthy the amount is re-derived from
them and the transaction's confidence lowered so it lands in review.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any

from statement_worker.extraction.models import ExtractedTransaction

CENT = Decimal("0.01")
TOLERANCE = Decimal("0.01")
SMALL_CORRECTION_LIMIT = Decimal("10")

CORRECTED_CONFIDENCE = 0.70
LARGE_CORRECTION_CONFIDENCE = 0.40
TYPE_MISMATCH_CONFIDENCE = 0.30


@dataclass(frozen=True)
class BrokenLink:
    index: int
    expected_balance: Decimal
    actual_balance: Decimal
    discrepancy: Decimal


@dataclass
class BalanceCheck:
    """Outcome of walking one chunk's balance chain."""

    label: str
    chain_length: int
    valid_links: int = 0
    coverage: float = 0.0
    broken_links: list[BrokenLink] = field(default_factory=list)
    corrections: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_fully_verified(self) -> bool:
        return not self.broken_links and self.coverage > 0.9

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "chain_length": self.chain_length,
            "valid_links": self.valid_links,
            "broken_links": len(self.broken_links),
            "coverage": round(self.coverage, 2),
            "fully_verified": self.is_fully_verified,
            "corrections": self.corrections,
        }


def _delta(txn: ExtractedTransaction) -> Decimal:
    return txn.amount if txn.type == "credit" else -txn.amount


def verify_balance_chain(
    transactions: list[ExtractedTransaction],
    label: str,
    opening_balance: Decimal | None = None,
) -> BalanceCheck:
    """Walk ``transactions`` in statement order checking each balance link.

    A transaction without a balance breaks the chain; the next balance
    seen starts a new one and counts as valid.
    """
    check = BalanceCheck(label=label, chain_length=len(transactions))
    with_balance = [txn for txn in transactions if txn.balance is not None]
    if not transactions or not with_balance:
        return check
    check.coverage = len(with_balance) / len(transactions)

    previous = opening_balance
    for index, txn in enumerate(transactions):
        if txn.balance is None:
            previous = None
            continue
        if previous is None:
            check.valid_links += 1
        else:
            expected = (previous + _delta(txn)).quantize(CENT)
            discrepancy = (txn.balance - expected).quantize(CENT)
            if abs(discrepancy) <= TOLERANCE:
                check.valid_links += 1
            else:
                check.broken_links.append(
                    BrokenLink(
                        index=index,
                        expected_balance=expected,
                        actual_balance=txn.balance,
                        discrepancy=discrepancy,
                    )
                )
        previous = txn.balance
    return check


def apply_balance_corrections(
    transactions: list[ExtractedTransaction],
    check: BalanceCheck,
    opening_balance: Decimal | None = None,
) -> list[ExtractedTransaction]:
    """Re-derive amounts at broken links from the surrounding balances.

    - same direction, under 10.00 off: amount replaced, confidence 0.70;
    - same direction, 10.00 or more off: amount replaced, confidence 0.40;
    - balance implies the opposite direction: amount kept, confidence 0.30.

    Corrections are recorded on ``check``. Returns a new list.
    """
    corrected = list(transactions)
    for link in check.broken_links:
        txn = corrected[link.index]
        previous = opening_balance if link.index == 0 else corrected[link.index - 1].balance
        if previous is None or txn.balance is None:
            continue

        delta = txn.balance - previous
        inferred_type = "credit" if delta >= 0 else "debit"
        inferred_amount = abs(delta).quantize(CENT)

        if inferred_type != txn.type:
            corrected[link.index] = replace(txn, extraction_confidence=TYPE_MISMATCH_CONFIDENCE)
            reason = f"extracted as {txn.type} but balance implies {inferred_type}"
        else:
            off_by = abs(inferred_amount - txn.amount)
            confidence = (
                CORRECTED_CONFIDENCE
                if off_by < SMALL_CORRECTION_LIMIT
                else LARGE_CORRECTION_CONFIDENCE
            )
            corrected[link.index] = replace(
                txn, amount=inferred_amount, extraction_confidence=confidence
            )
            reason = f"amount {txn.amount} -> {inferred_amount} from balance chain"

        check.corrections.append(
            {
                "index": link.index,
                "date": txn.date.isoformat(),
                "merchant": txn.merchant,
                "original_amount": str(txn.amount),
                "corrected_amount": str(inferred_amount),
                "reason": reason,
            }
        )
    return corrected
