"""Monthly chunking of normalized statement text."""

import calendar
from datetime import date

from statement_worker.logging.logger import Log
from statement_worker.statement.dates import extract_date_from_line
from statement_worker.statement.models import MonthChunk, StatementPeriod

DEFAULT_HEADER_CONTEXT_LINES = 5


def month_label(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def build_month_chunks(period: StatementPeriod) -> list[MonthChunk]:
    """Partition a statement period into consecutive calendar months.

    The first chunk starts at the period start and the last ends at the
    period end, even when either falls mid-month.
    """
    chunks: list[MonthChunk] = []
    year, month = period.start_date.year, period.start_date.month
    while date(year, month, 1) <= period.end_date:
        month_start = date(year, month, 1)
        month_end = date(year, month, calendar.monthrange(year, month)[1])
        chunks.append(
            MonthChunk(
                start_date=max(month_start, period.start_date),
                end_date=min(month_end, period.end_date),
                label=month_label(month_start),
            )
        )
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return chunks


def split_text_by_month(
    text: str,
    chunks: list[MonthChunk],
    header_context_lines: int = DEFAULT_HEADER_CONTEXT_LINES,
) -> dict[str, str]:
    """Assign every line of ``text`` to the month chunk its date falls in.

    - Non-empty lines before the first dated line are header context; the
      last ``header_context_lines`` of them are prepended to every
      non-empty chunk.
    - A dated line outside every chunk is held back and flushed into the
      next chunk that receives a dated line.
    - An undated line after the first dated line continues the current
      chunk (multi-line transaction descriptions).

    Returns a mapping of chunk label to chunk text, in chunk order. Chunks
    that received no lines map to an empty string.
    """
    buckets: dict[str, list[str]] = {chunk.label: [] for chunk in chunks}
    header_lines: list[str] = []
    pending: list[str] = []
    current_label: str | None = None
    seen_date = False

    for line in text.splitlines():
        line_date = extract_date_from_line(line)

        if line_date is None:
            if not seen_date:
                if line.strip():
                    header_lines.append(line)
            elif line.strip() and current_label is not None:
                buckets[current_label].append(line)
            elif line.strip():
                pending.append(line)
            continue

        seen_date = True
        target = _find_chunk(chunks, line_date)
        if target is None:
            pending.append(line)
            continue

        if pending:
            buckets[target.label].extend(pending)
            pending = []
        buckets[target.label].append(line)
        current_label = target.label

    header = "\n".join(header_lines[-header_context_lines:]) if header_context_lines > 0 else ""
    result: dict[str, str] = {}
    for chunk in chunks:
        body = "\n".join(buckets[chunk.label])
        if not body.strip():
            result[chunk.label] = ""
            continue
        result[chunk.label] = f"{header}\n\n{body}\n" if header else f"{body}\n"
        Log.debug(
            f"Text chunk for {chunk.label}",
            lines=len(buckets[chunk.label]),
            chars=len(result[chunk.label]),
        )
    if pending:
        Log.debug(f"{len(pending)} trailing lines fell outside every month chunk")
    return result


def _find_chunk(chunks: list[MonthChunk], value: date) -> MonthChunk | None:
    for chunk in chunks:
        if chunk.contains(value):
            return chunk
    return None
