from datetime import date
from decimal import Decimal

from statement_worker.extraction.models import ExtractedTransaction
from statement_worker.processor.merge import dedupe_transactions, merge_transactions


def _make_txn(
    day: date,
    merchant: str = "TESCO",
    amount: str = "10.00",
    txn_type: str = "debit",
) -> ExtractedTransaction:
    return ExtractedTransaction(
        date=day,
        merchant=merchant,
        amount=Decimal(amount),
        type=txn_type,
        extraction_confidence=0.9,
    )


class TestMergeTransactions:
    def test_sorts_by_date_across_chunks(self) -> None:
        october = [_make_txn(date(2023, 10, 2), "RENT")]
        september = [_make_txn(date(2023, 9, 20), "B"), _make_txn(date(2023, 9, 5), "A")]

        merged = merge_transactions([october, september])

        assert [t.merchant for t in merged] == ["A", "B", "RENT"]

    def test_is_stable_for_same_date(self) -> None:
        first = _make_txn(date(2023, 9, 5), "FIRST")
        second = _make_txn(date(2023, 9, 5), "SECOND")

        merged = merge_transactions([[first, second]])

        assert merged == [first, second]

    def test_empty(self) -> None:
        assert merge_transactions([]) == []


class TestDedupeTransactions:
    def test_removes_exact_repeat_across_chunks(self) -> None:
        september = [_make_txn(date(2023, 9, 5), "Tesco Stores")]
        october = [_make_txn(date(2023, 9, 5), "TESCO STORES")]

        kept, removed = dedupe_transactions([september, october])

        assert kept == september
        assert removed == 1

    def test_keeps_exact_repeat_within_one_chunk(self) -> None:
        coffee = _make_txn(date(2023, 9, 5), "COFFEE", "3.50")

        kept, removed = dedupe_transactions([[coffee, coffee]])

        assert kept == [coffee, coffee]
        assert removed == 0

    def test_sorted_single_chunk_matches_merge(self) -> None:
        chunk = [
            _make_txn(date(2023, 9, 5), "COFFEE"),
            _make_txn(date(2023, 9, 5), "COFFEE"),
            _make_txn(date(2023, 9, 30), "NETFLIX"),
            _make_txn(date(2023, 10, 1), "NETFLIX"),
        ]

        kept, removed = dedupe_transactions([chunk])

        assert kept == merge_transactions([chunk])
        assert removed == 0

    def test_overlap_keeps_largest_per_chunk_count(self) -> None:
        coffee = _make_txn(date(2023, 9, 30), "COFFEE", "3.50")

        kept, removed = dedupe_transactions([[coffee, coffee], [coffee]])

        assert kept == [coffee, coffee]
        assert removed == 1

    def test_removes_month_boundary_repeat(self) -> None:
        september = [_make_txn(date(2023, 9, 30), "NETFLIX")]
        october = [_make_txn(date(2023, 10, 1), "NETFLIX")]

        kept, removed = dedupe_transactions([september, october])

        assert kept == september
        assert removed == 1

    def test_keeps_repeat_within_same_month(self) -> None:
        txns = [
            _make_txn(date(2023, 9, 5), "COFFEE"),
            _make_txn(date(2023, 9, 6), "COFFEE"),
        ]

        kept, removed = dedupe_transactions([txns[:1], txns[1:]])

        assert kept == txns
        assert removed == 0

    def test_keeps_different_amounts(self) -> None:
        txns = [
            _make_txn(date(2023, 9, 30), "NETFLIX", "9.99"),
            _make_txn(date(2023, 10, 1), "NETFLIX", "10.99"),
        ]

        kept, _removed = dedupe_transactions([txns[:1], txns[1:]])

        assert kept == txns

    def test_keeps_boundary_pair_more_than_two_days_apart(self) -> None:
        txns = [
            _make_txn(date(2023, 9, 29), "NETFLIX"),
            _make_txn(date(2023, 10, 2), "NETFLIX"),
        ]

        kept, removed = dedupe_transactions([txns[:1], txns[1:]])

        assert removed == 0
        assert kept == txns

    def test_keeps_opposite_types(self) -> None:
        txns = [
            _make_txn(date(2023, 9, 5), "REFUND", txn_type="debit"),
            _make_txn(date(2023, 9, 5), "REFUND", txn_type="credit"),
        ]

        kept, removed = dedupe_transactions([txns[:1], txns[1:]])

        assert removed == 0
        assert len(kept) == 2
