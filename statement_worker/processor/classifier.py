"""Format classification and text normalization of downloaded statements."""

from pathlib import PurePosixPath

from statement_worker.logging.logger import Log
from statement_worker.pdf.base import BasePdfExtractor
from statement_worker.pdf.exceptions import PdfExtractionError
from statement_worker.pdf.models import PdfText
from statement_worker.processor.exceptions import UnsupportedFormatError
from statement_worker.processor.models import DocumentFormat, NormalizedDocument
from statement_worker.tabular.parser import parse_csv, parse_spreadsheet

DEFAULT_CHARS_PER_PAGE = 50

CSV_MIME_TYPES = frozenset({"text/csv", "application/csv", "text/comma-separated-values"})
SPREADSHEET_MIME_TYPES = frozenset({
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})
PDF_MIME_TYPES = frozenset({"application/pdf"})

_EXTENSIONS = {
    ".csv": DocumentFormat.CSV,
    ".xlsx": DocumentFormat.SPREADSHEET,
    ".xls": DocumentFormat.SPREADSHEET,
    ".pdf": DocumentFormat.PDF,
}


def classify_format(mime_type: str | None, file_name: str | None = None) -> DocumentFormat:
    """Decide how a document is read, by declared media type then file extension.

    Raises:
        UnsupportedFormatError: if neither identifies a supported format.
    """
    media = (mime_type or "").split(";")[0].strip().lower()
    if media in CSV_MIME_TYPES:
        return DocumentFormat.CSV
    if media in SPREADSHEET_MIME_TYPES:
        return DocumentFormat.SPREADSHEET
    if media in PDF_MIME_TYPES:
        return DocumentFormat.PDF
    if file_name:
        by_extension = _EXTENSIONS.get(PurePosixPath(file_name).suffix.lower())
        if by_extension is not None:
            return by_extension
    raise UnsupportedFormatError(f"Unsupported document type: {mime_type or 'unknown'}")


def classify_pdf(pdf_text: PdfText, chars_per_page: int = DEFAULT_CHARS_PER_PAGE) -> bool:
    """A PDF is treated as scanned when it yields under ``chars_per_page`` per page."""
    pages = max(pdf_text.page_count, 1)
    return len(pdf_text.text.strip()) < chars_per_page * pages


class TextNormalizer:
    """Turns raw document bytes into text the splitter and extractor can use."""

    def __init__(
        self,
        pdf_extractor: BasePdfExtractor,
        chars_per_page: int = DEFAULT_CHARS_PER_PAGE,
    ) -> None:
        self._pdf_extractor = pdf_extractor
        self._chars_per_page = chars_per_page

    def normalize(self, document_format: DocumentFormat, raw_bytes: bytes) -> NormalizedDocument:
        """Normalize a document of a known format.

        Raises:
            TabularParseError: if a CSV or spreadsheet cannot be parsed.
        """
        if document_format is DocumentFormat.CSV:
            return NormalizedDocument(format=document_format, text=parse_csv(raw_bytes))
        if document_format is DocumentFormat.SPREADSHEET:
            return NormalizedDocument(format=document_format, text=parse_spreadsheet(raw_bytes))
        return self._normalize_pdf(raw_bytes)

    def _normalize_pdf(self, raw_bytes: bytes) -> NormalizedDocument:
        try:
            pdf_text = self._pdf_extractor.extract(raw_bytes)
        except PdfExtractionError as exc:
            Log.warning(f"PDF text extraction failed, treating as image-based: {exc}")
            return NormalizedDocument(
                format=DocumentFormat.PDF, text="", is_image_based=True, page_count=0
            )

        scanned = classify_pdf(pdf_text, self._chars_per_page)
        Log.info(
            "PDF text extracted",
            chars=len(pdf_text.text),
            pages=pdf_text.page_count,
            chars_per_page=pdf_text.chars_per_page,
            image_based=scanned,
        )
        return NormalizedDocument(
            format=DocumentFormat.PDF,
            text="" if scanned else pdf_text.text,
            is_image_based=scanned,
            page_count=pdf_text.page_count,
        )
