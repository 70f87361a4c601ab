"""Renders CSV and spreadsheet statements as line-oriented text.

Each data row becomes one ``Row N: ...`` line so the monthly splitter can
find the row's ``Date:`` field and the extraction model sees labeled values.
"""

import csv
import io
import re
import zipfile
from collections.abc import Iterable, Sequence
from datetime import date, datetime

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from statement_worker.logging.logger import Log
from statement_worker.tabular.exceptions import TabularParseError

HEADER_TOKEN_RE = re.compile(
    r"^(date|transaction|description|amount|debit|credit|balance|reference|type"
    r"|merchant|details|particulars|money\s*(in|out))",
    re.IGNORECASE,
)


def looks_like_header(cells: Sequence[str]) -> bool:
    """True if any cell starts with a known statement column name."""
    return any(HEADER_TOKEN_RE.match(cell.strip()) for cell in cells)


def parse_csv(data: bytes) -> str:
    """Parse delimited text into structured statement text.

    Raises:
        TabularParseError: if the file is empty or cannot be parsed.
    """
    try:
        text = _decode(data)
        rows = [
            [cell.strip() for cell in row]
            for row in csv.reader(io.StringIO(text))
            if any(cell.strip() for cell in row)
        ]
    except csv.Error as exc:
        raise TabularParseError(f"Failed to parse CSV file: {exc}") from exc

    if not rows:
        raise TabularParseError("Failed to parse CSV file: CSV file is empty")

    has_header = looks_like_header(rows[0])
    lines = ["=== BANK STATEMENT DATA (CSV) ===", ""]
    lines.extend(_render_rows(rows, has_header))
    lines.append("")
    lines.append(f"Total rows: {len(rows) - 1 if has_header else len(rows)}")

    Log.info(
        "CSV parsed",
        rows=len(rows),
        columns=len(rows[0]),
        has_header=has_header,
    )
    return "\n".join(lines)


def parse_spreadsheet(data: bytes) -> str:
    """Parse an XLSX workbook sheet by sheet into structured statement text.

    Workbooks that are not valid XLSX (legacy ``.xls`` exports are often
    CSV in disguise) are parsed as CSV instead.

    Raises:
        TabularParseError: if the workbook cannot be parsed.
    """
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError) as exc:
        Log.warning(f"XLSX load failed, attempting CSV fallback: {exc}")
        return parse_csv(data)

    lines = ["=== BANK STATEMENT DATA (EXCEL) ===", ""]
    total_rows = 0
    sheet_count = len(workbook.sheetnames)
    try:
        for sheet in workbook.worksheets:
            lines.append(f"--- Sheet: {sheet.title} ---")
            rows = [[cell_text(value) for value in row] for row in sheet.iter_rows(values_only=True)]
            if not any(_non_empty(row) for row in rows):
                lines.append("(empty sheet)")
                lines.append("")
                continue
            has_header = looks_like_header(rows[0])
            rendered = _render_rows(rows, has_header)
            total_rows += sum(1 for line in rendered if line.startswith("Row "))
            lines.extend(rendered)
            lines.append("")
    except Exception as exc:
        raise TabularParseError(f"Failed to parse Excel file: {exc}") from exc
    finally:
        workbook.close()

    lines.append(f"Total data rows: {total_rows}")
    Log.info("Excel parsed", sheets=sheet_count, total_rows=total_rows)
    return "\n".join(lines)


def cell_text(value: object) -> str:
    """Render a spreadsheet cell value; dates become ISO ``YYYY-MM-DD``."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _render_rows(rows: list[list[str]], has_header: bool) -> list[str]:
    if has_header:
        headers = rows[0]
        lines = [f"Columns: {' | '.join(h for h in headers if h)}", "---"]
        for number, row in enumerate(rows[1:], start=1):
            parts = [
                f"{header}: {value}"
                for header, value in zip(headers, row)
                if header and value
            ]
            if parts:
                lines.append(f"Row {number}: {' | '.join(parts)}")
        return lines

    lines = [f"Detected {len(rows)} rows, {max(len(r) for r in rows)} columns", "---"]
    for number, row in enumerate(rows, start=1):
        values = _non_empty(row)
        if values:
            lines.append(f"Row {number}: {' | '.join(values)}")
    return lines


def _non_empty(values: Iterable[str]) -> list[str]:
    return [value for value in values if value]


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")
