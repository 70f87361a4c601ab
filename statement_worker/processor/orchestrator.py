"""Drives extraction calls for one document: per month, per page batch or whole.

Calls are strictly sequential with a fixed pause between them; the pause
is the worker's only back-pressure against provider rate limits. A failed
chunk is logged and recorded, never retried within the same attempt.
"""

import time
from collections.abc import Callable

from statement_worker.extraction.base import BaseExtractor
from statement_worker.extraction.models import ExtractedTransaction, ExtractionRequest
from statement_worker.logging.logger import Log
from statement_worker.processor.balance import (
    BalanceCheck,
    apply_balance_corrections,
    verify_balance_chain,
)
from statement_worker.processor.exceptions import ExtractionFailedError
from statement_worker.processor.merge import dedupe_transactions, merge_transactions
from statement_worker.processor.models import ChunkOutcome, OrchestrationResult
from statement_worker.statement.chunking import build_month_chunks, split_text_by_month
from statement_worker.statement.models import MonthChunk, StatementPeriod
from statement_worker.statement.period import detect_period

WHOLE_DOCUMENT_LABEL = "full-document"


class ChunkExtractionOrchestrator:
    """Runs the extraction capability over a normalized document."""

    def __init__(
        self,
        extractor: BaseExtractor,
        *,
        chunk_delay_seconds: float = 2.0,
        max_period_months: int = 24,
        header_context_lines: int = 5,
        image_pages_per_call: int = 10,
        dedupe: bool = True,
        verify_balances: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._extractor = extractor
        self._chunk_delay_seconds = chunk_delay_seconds
        self._max_period_months = max_period_months
        self._header_context_lines = header_context_lines
        self._image_pages_per_call = max(1, image_pages_per_call)
        self._dedupe = dedupe
        self._verify_balances = verify_balances
        self._sleep = sleep

    def run(self, text: str) -> OrchestrationResult:
        """Extract from normalized text, one call per month when a period is found.

        Raises:
            ExtractionError: if the single whole-document call fails.
            ExtractionFailedError: if every month chunk fails.
        """
        period = detect_period(text, self._max_period_months)
        if period is None:
            Log.info("No statement period detected, extracting whole document")
            return self._run_whole(text)

        chunks = build_month_chunks(period)
        chunk_texts = split_text_by_month(text, chunks, self._header_context_lines)
        Log.info(
            f"Splitting into {len(chunks)} monthly extractions",
            months=",".join(chunk.label for chunk in chunks),
        )

        requests = self._month_requests(chunks, chunk_texts)
        if not requests:
            Log.warning("No dated lines matched any month, extracting whole period at once")
            return self._run_whole(text, period)

        results, outcomes, checks = self._run_sequence(requests)
        return self._finish(
            results,
            outcomes,
            checks,
            chunked=True,
            chunk_count=len(chunks),
            period=period,
            period_source="detected",
        )

    def run_months(self, text: str, labels: list[str]) -> OrchestrationResult:
        """Re-extract only the months named in ``labels`` from cached text.

        The text is split exactly as on the first pass, so each month sees
        the same header context and carried-over lines.

        Raises:
            ExtractionFailedError: if no period is found, none of the labels
                match a month with text, or every requested month fails.
        """
        period = detect_period(text, self._max_period_months)
        if period is None:
            raise ExtractionFailedError("No statement period in cached text, cannot target months")

        chunks = build_month_chunks(period)
        chunk_texts = split_text_by_month(text, chunks, self._header_context_lines)
        wanted = set(labels)
        selected = [chunk for chunk in chunks if chunk.label in wanted]
        unknown = wanted - {chunk.label for chunk in selected}
        if unknown:
            Log.warning(f"Ignoring months outside the statement period: {', '.join(sorted(unknown))}")

        requests = self._month_requests(selected, chunk_texts)
        if not requests:
            raise ExtractionFailedError(f"No text available for months: {', '.join(labels)}")
        Log.info(
            f"Re-extracting {len(requests)} months",
            months=",".join(request.label for request in requests),
        )

        results, outcomes, checks = self._run_sequence(requests)
        return self._finish(
            results,
            outcomes,
            checks,
            chunked=True,
            chunk_count=len(requests),
            period=period,
            period_source="detected",
        )

    def run_images(self, pages: list[str]) -> OrchestrationResult:
        """Extract from rendered page images, a batch of pages per call.

        Raises:
            ExtractionFailedError: if there are no pages or every batch fails.
        """
        if not pages:
            raise ExtractionFailedError("Image-based PDF has no renderable pages")

        size = self._image_pages_per_call
        batches = [pages[i : i + size] for i in range(0, len(pages), size)]
        requests = [
            ExtractionRequest(
                media_type="image/png",
                images=batch,
                chunk_index=index,
                chunk_total=len(batches),
                label=f"pages {index * size + 1}-{index * size + len(batch)}",
            )
            for index, batch in enumerate(batches)
        ]
        Log.info(f"Extracting {len(pages)} page images in {len(batches)} calls")

        results, outcomes, checks = self._run_sequence(requests)
        merged = self._finish(
            results,
            outcomes,
            checks,
            chunked=False,
            chunk_count=len(batches),
            period=None,
            period_source=None,
        )
        return self._with_derived_period(merged)

    def _month_requests(
        self,
        chunks: list[MonthChunk],
        chunk_texts: dict[str, str],
    ) -> list[ExtractionRequest]:
        return [
            ExtractionRequest(
                text=chunk_texts[chunk.label],
                start_date=chunk.start_date,
                end_date=chunk.end_date,
                chunk_index=index,
                chunk_total=len(chunks),
                label=chunk.label,
            )
            for index, chunk in enumerate(chunks)
            if self._has_content(chunk, chunk_texts[chunk.label])
        ]

    def _run_whole(self, text: str, period: StatementPeriod | None = None) -> OrchestrationResult:
        request = ExtractionRequest(
            text=text,
            start_date=period.start_date if period else None,
            end_date=period.end_date if period else None,
            label=WHOLE_DOCUMENT_LABEL,
        )
        transactions, check = self._checked(self._extractor.extract(request), request.label)
        outcome = ChunkOutcome(
            label=WHOLE_DOCUMENT_LABEL,
            start_date=request.start_date.isoformat() if request.start_date else None,
            end_date=request.end_date.isoformat() if request.end_date else None,
            succeeded=True,
            transaction_count=len(transactions),
        )
        result = self._finish(
            [transactions],
            [outcome],
            [check] if check else [],
            chunked=False,
            chunk_count=1,
            period=period,
            period_source="detected" if period else None,
        )
        return result if period else self._with_derived_period(result)

    def _run_sequence(
        self,
        requests: list[ExtractionRequest],
    ) -> tuple[list[list[ExtractedTransaction]], list[ChunkOutcome], list[BalanceCheck]]:
        results: list[list[ExtractedTransaction]] = []
        outcomes: list[ChunkOutcome] = []
        checks: list[BalanceCheck] = []
        for position, request in enumerate(requests):
            if position > 0 and self._chunk_delay_seconds > 0:
                self._sleep(self._chunk_delay_seconds)
            start = request.start_date.isoformat() if request.start_date else None
            end = request.end_date.isoformat() if request.end_date else None
            try:
                transactions = self._extractor.extract(request)
            except Exception as exc:
                Log.error(
                    f"Chunk {request.chunk_index + 1}/{request.chunk_total} extraction failed: {exc}",
                    chunk=request.label,
                    start_date=start,
                    end_date=end,
                )
                outcomes.append(
                    ChunkOutcome(
                        label=request.label,
                        start_date=start,
                        end_date=end,
                        succeeded=False,
                        error=str(exc),
                    )
                )
                continue
            transactions, check = self._checked(transactions, request.label)
            if check is not None:
                checks.append(check)
            results.append(transactions)
            outcomes.append(
                ChunkOutcome(
                    label=request.label,
                    start_date=start,
                    end_date=end,
                    succeeded=True,
                    transaction_count=len(transactions),
                )
            )

        if not results:
            failed = ", ".join(outcome.label for outcome in outcomes)
            raise ExtractionFailedError(f"Extraction failed for every chunk: {failed}")
        return results, outcomes, checks

    def _checked(
        self,
        transactions: list[ExtractedTransaction],
        label: str,
    ) -> tuple[list[ExtractedTransaction], BalanceCheck | None]:
        """Verify one call's balance chain and correct broken links."""
        if not self._verify_balances:
            return transactions, None
        check = verify_balance_chain(transactions, label)
        if check.broken_links:
            transactions = apply_balance_corrections(transactions, check)
        Log.info(
            f"Balance verification for {label}",
            coverage=f"{check.coverage:.0%}",
            valid=check.valid_links,
            broken=len(check.broken_links),
            corrected=len(check.corrections),
        )
        return transactions, check

    def _finish(
        self,
        results: list[list[ExtractedTransaction]],
        outcomes: list[ChunkOutcome],
        checks: list[BalanceCheck],
        *,
        chunked: bool,
        chunk_count: int,
        period: StatementPeriod | None,
        period_source: str | None,
    ) -> OrchestrationResult:
        removed = 0
        if self._dedupe and len(results) > 1:
            merged, removed = dedupe_transactions(results)
            if removed:
                Log.info(f"Deduplication removed {removed} transactions")
        else:
            merged = merge_transactions(results)
        return OrchestrationResult(
            transactions=merged,
            chunked=chunked,
            chunk_count=chunk_count,
            period=period,
            period_source=period_source,
            outcomes=outcomes,
            duplicates_removed=removed,
            balance_checks=checks,
        )

    @staticmethod
    def _with_derived_period(result: OrchestrationResult) -> OrchestrationResult:
        if result.transactions:
            # merged transactions are date-sorted
            result.period = StatementPeriod(
                start_date=result.transactions[0].date,
                end_date=result.transactions[-1].date,
            )
            result.period_source = "derived"
        return result

    @staticmethod
    def _has_content(chunk: MonthChunk, chunk_text: str) -> bool:
        if chunk_text.strip():
            return True
        Log.warning(f"No text found for {chunk.label}, skipping")
        return False
