"""Merging of per-chunk extraction results."""

import re
from collections import defaultdict
from collections.abc import Iterable, Sequence

from statement_worker.extraction.models import ExtractedTransaction

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def merge_transactions(
    chunk_results: Iterable[list[ExtractedTransaction]],
) -> list[ExtractedTransaction]:
    """Concatenate chunk results and sort ascending by date.

    ``sorted`` is stable, so transactions sharing a date keep the order the
    provider returned them in.
    """
    merged = [txn for chunk in chunk_results for txn in chunk]
    return sorted(merged, key=lambda txn: txn.date)


def _merchant_key(merchant: str, length: int) -> str:
    return _NON_ALNUM.sub("", merchant.lower())[:length]


def dedupe_transactions(
    chunk_results: Sequence[list[ExtractedTransaction]],
) -> tuple[list[ExtractedTransaction], int]:
    """Merge chunk results, dropping duplicates introduced by overlapping chunks.

    Only copies coming from different chunks are duplicates; repeats inside
    one chunk are separate transactions and always kept. Two kinds go:
    - exact repeats: same date, amount, type and normalized merchant. A
      chunk's n-th copy is dropped when another chunk already supplied n;
    - month-boundary repeats: same amount, type and merchant one or two
      days apart in different calendar months, from different chunks. The
      later one goes.

    Returns the kept transactions (date-sorted, as ``merge_transactions``
    would order them) and the number removed.
    """
    tagged = sorted(
        (
            (txn, index)
            for index, chunk in enumerate(chunk_results)
            for txn in chunk
        ),
        key=lambda pair: pair[0].date,
    )

    per_chunk: dict[tuple[object, ...], dict[int, int]] = defaultdict(lambda: defaultdict(int))
    kept_count: dict[tuple[object, ...], int] = defaultdict(int)
    unique: list[tuple[ExtractedTransaction, int]] = []
    for txn, index in tagged:
        key = (txn.date, txn.amount, txn.type, _merchant_key(txn.merchant, 20))
        per_chunk[key][index] += 1
        occurrence = per_chunk[key][index]
        if occurrence <= kept_count[key]:
            continue
        kept_count[key] = occurrence
        unique.append((txn, index))

    removed: set[int] = set()
    for i, (first, first_chunk) in enumerate(unique):
        if i in removed:
            continue
        for j in range(i + 1, len(unique)):
            second, second_chunk = unique[j]
            gap = (second.date - first.date).days
            if gap > 2:
                break
            if j in removed or gap < 1 or second_chunk == first_chunk:
                continue
            if (first.date.year, first.date.month) == (second.date.year, second.date.month):
                continue
            if (
                first.amount == second.amount
                and first.type == second.type
                and _merchant_key(first.merchant, 15) == _merchant_key(second.merchant, 15)
            ):
                removed.add(j)

    kept = [txn for position, (txn, _chunk) in enumerate(unique) if position not in removed]
    return kept, len(tagged) - len(kept)
