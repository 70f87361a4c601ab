"""Date recognition for bank statement text.

Numeric dates are always read day-first (``DD/MM/YYYY``), the UK
convention used by the statements this worker ingests. ``03/04/2024`` is
the 3rd of April, never the 4th of March.
"""

import re
from datetime import date

MONTH_NUMBERS: dict[str, int] = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7,
    "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# Full names first so "September" is not consumed as "Sep".
_MONTH_ALTERNATION = (
    "january|february|march|april|may|june|july|august|september|october|november|december"
    "|jan|feb|mar|apr|jun|jul|aug|sep|oct|nov|dec"
)

_DAY_FIRST = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")
_DAY_MONTH_NAME = re.compile(rf"(\d{{1,2}})\s+({_MONTH_ALTERNATION})\s+(\d{{4}})", re.IGNORECASE)
_MONTH_NAME_DAY = re.compile(rf"\b({_MONTH_ALTERNATION})\s+(\d{{1,2}}),?\s+(\d{{4}})", re.IGNORECASE)
_ISO = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

_ANY_DATE = re.compile(
    r"\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}[/\-]\d{1,2}[/\-]\d{4}"
    rf"|\d{{1,2}}\s+(?:{_MONTH_ALTERNATION})\s+\d{{4}}"
    rf"|\b(?:{_MONTH_ALTERNATION})\s+\d{{1,2}},?\s+\d{{4}}",
    re.IGNORECASE,
)

_FIELD_ISO = re.compile(r"\bDate:\s*(\d{4})-(\d{2})-(\d{2})", re.IGNORECASE)
_FIELD_DAY_FIRST = re.compile(r"\bDate:\s*(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})", re.IGNORECASE)
_LINE_DAY_FIRST = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")
_LINE_DAY_MONTH_NAME = re.compile(
    rf"^(\d{{1,2}})\s+({_MONTH_ALTERNATION})\s+(\d{{4}})", re.IGNORECASE
)
_LINE_ISO = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def build_date(year: int, month: int, day: int) -> date | None:
    """Return a date if the parts form a real calendar day."""
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_day_first(match: re.Match[str]) -> date | None:
    return build_date(int(match.group(3)), int(match.group(2)), int(match.group(1)))


def _from_day_month_name(match: re.Match[str]) -> date | None:
    month = MONTH_NUMBERS.get(match.group(2).lower())
    if month is None:
        return None
    return build_date(int(match.group(3)), month, int(match.group(1)))


def _from_month_name_day(match: re.Match[str]) -> date | None:
    month = MONTH_NUMBERS.get(match.group(1).lower())
    if month is None:
        return None
    return build_date(int(match.group(3)), month, int(match.group(2)))


def _from_iso(match: re.Match[str]) -> date | None:
    return build_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def parse_date(value: str) -> date | None:
    """Parse the first date-like substring of ``value``.

    Formats are tried in priority order: ``DD/MM/YYYY`` / ``DD-MM-YYYY``,
    ``DD MonthName YYYY``, ``MonthName DD, YYYY``, ``YYYY-MM-DD``. A format
    whose match is not a valid calendar day falls through to the next one.
    """
    for pattern, convert in (
        (_DAY_FIRST, _from_day_first),
        (_DAY_MONTH_NAME, _from_day_month_name),
        (_MONTH_NAME_DAY, _from_month_name_day),
        (_ISO, _from_iso),
    ):
        match = pattern.search(value)
        if match:
            parsed = convert(match)
            if parsed is not None:
                return parsed
    return None


def find_all_dates(text: str) -> list[date]:
    """Parse every date-like substring of ``text`` in order of appearance."""
    found: list[date] = []
    for match in _ANY_DATE.finditer(text):
        parsed = parse_date(match.group(0))
        if parsed is not None:
            found.append(parsed)
    return found


def extract_date_from_line(line: str) -> date | None:
    """Return the transaction date a normalized text line starts with.

    Tabular rows (``Row 3: Date: 15/01/2024 | Amount: ...``) carry the date
    as a ``Date:`` field anywhere in the line and are checked first. PDF
    statement lines carry it at the start of the line.
    """
    stripped = line.strip()
    if not stripped:
        return None

    match = _FIELD_ISO.search(stripped)
    if match:
        parsed = _from_iso(match)
        if parsed is not None:
            return parsed

    match = _FIELD_DAY_FIRST.search(stripped)
    if match:
        parsed = _from_day_first(match)
        if parsed is not None:
            return parsed

    for pattern, convert in (
        (_LINE_DAY_FIRST, _from_day_first),
        (_LINE_DAY_MONTH_NAME, _from_day_month_name),
        (_LINE_ISO, _from_iso),
    ):
        match = pattern.match(stripped)
        if match:
            parsed = convert(match)
            if parsed is not None:
                return parsed
    return None


def month_span(start: date, end: date) -> int:
    """Number of calendar-month boundaries between two dates."""
    return (end.year - start.year) * 12 + end.month - start.month
