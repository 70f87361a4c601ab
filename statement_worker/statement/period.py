"""Statement period detection from normalized text (no external calls)."""

import re

from statement_worker.logging.logger import Log
from statement_worker.statement.dates import find_all_dates, month_span, parse_date
from statement_worker.statement.models import StatementPeriod

DEFAULT_MAX_PERIOD_MONTHS = 24

_DATE_LIKE = (
    r"(\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}[/\-]\d{1,2}[/\-]\d{4}"
    r"|\d{1,2}\s+[A-Za-z]{3,9}\s+\d{4}"
    r"|[A-Za-z]{3,9}\s+\d{1,2},?\s+\d{4})"
)

PERIOD_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        rf"statement\s*period[:\s]+{_DATE_LIKE}\s+to\s+{_DATE_LIKE}",
        rf"statement\s*period[:\s]+{_DATE_LIKE}\s*[-–]\s*{_DATE_LIKE}",
        rf"period[:\s]+{_DATE_LIKE}\s+to\s+{_DATE_LIKE}",
        rf"period[:\s]+{_DATE_LIKE}\s*[-–]\s*{_DATE_LIKE}",
        rf"from\s+{_DATE_LIKE}\s+to\s+{_DATE_LIKE}",
        rf"between\s+{_DATE_LIKE}\s+and\s+{_DATE_LIKE}",
    )
)


def detect_period(
    text: str,
    max_months: int = DEFAULT_MAX_PERIOD_MONTHS,
) -> StatementPeriod | None:
    """Infer the calendar range a statement covers.

    Labeled phrases ("Statement period: A to B", "From A to B", ...) win.
    Otherwise the earliest and latest dates anywhere in the text are used,
    provided they lie in different months at most ``max_months`` apart.
    Returns None when neither strategy yields a range.
    """
    normalized = re.sub(r"\s+", " ", text)

    period = _detect_labeled(normalized)
    if period is not None:
        return period

    period = _detect_from_all_dates(normalized, max_months)
    if period is not None:
        return period

    Log.warning("Could not detect statement period from text")
    return None


def _detect_labeled(normalized: str) -> StatementPeriod | None:
    for pattern in PERIOD_PATTERNS:
        match = pattern.search(normalized)
        if not match:
            continue
        start = parse_date(match.group(1))
        end = parse_date(match.group(2))
        if start is None or end is None or end < start:
            continue
        Log.info(
            "Statement period detected from label",
            start_date=start.isoformat(),
            end_date=end.isoformat(),
        )
        return StatementPeriod(start_date=start, end_date=end)
    return None


def _detect_from_all_dates(normalized: str, max_months: int) -> StatementPeriod | None:
    dates = find_all_dates(normalized)
    if len(dates) < 2:
        return None
    start, end = min(dates), max(dates)
    span = month_span(start, end)
    if span <= 0 or span > max_months:
        Log.debug(f"Rejected all-dates period spanning {span} months")
        return None
    Log.info(
        "Statement period detected from all dates",
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        dates_found=len(dates),
    )
    return StatementPeriod(start_date=start, end_date=end)
