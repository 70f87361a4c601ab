import io
from datetime import date

import openpyxl
import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

STATEMENT_LINES = [
    "Example Bank plc",
    "Account: 12345678 Sort code: 12-34-56",
    "Statement Period: 01/09/2023 to 30/11/2023",
    "Date Description Amount Balance",
    "05/09/2023 TESCO STORES 45.20 1954.80",
    "18/09/2023 SALARY ACME LTD 2500.00 4454.80",
    "02/10/2023 RENT PAYMENT 1200.00 3254.80",
    "15/11/2023 AMAZON MARKETPLACE 19.99 3234.81",
]


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def statement_pdf_bytes() -> bytes:
    """Generate a one-page bank statement spanning three months."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    y = 720
    for line in STATEMENT_LINES:
        c.drawString(72, y, line)
        y -= 18
    c.save()
    return buf.getvalue()


@pytest.fixture()
def statement_text() -> str:
    return "\n".join(STATEMENT_LINES)


@pytest.fixture()
def statement_csv_bytes() -> bytes:
    return (
        "Date,Description,Amount,Balance\n"
        "15/01/2024,TESCO STORES,-45.20,954.80\n"
        "03/02/2024,SALARY,2500.00,3454.80\n"
    ).encode("utf-8")


@pytest.fixture()
def statement_xlsx_bytes() -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Transactions"
    sheet.append(["Date", "Description", "Amount"])
    sheet.append([date(2024, 1, 15), "TESCO STORES", -45.2])
    sheet.append([date(2024, 2, 3), "SALARY", 2500.0])
    workbook.create_sheet("Notes")
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()
