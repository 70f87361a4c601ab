import base64

import pymupdf

from statement_worker.pdf.base import BasePageRenderer, BasePdfExtractor
from statement_worker.pdf.exceptions import PdfExtractionError, PdfRenderError
from statement_worker.pdf.models import PdfText


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text from PDF using PyMuPDF."""

    def extract(self, pdf_bytes: bytes) -> PdfText:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
            return PdfText(text="\n".join(pages).strip(), page_count=len(pages))
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc


class PyMuPdfPageRenderer(BasePageRenderer):
    """Renders PDF pages to PNG with PyMuPDF for scanned statements."""

    def __init__(self, dpi: int = 150) -> None:
        self._dpi = dpi

    def render(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return [
                    base64.b64encode(page.get_pixmap(dpi=self._dpi).tobytes("png")).decode("ascii")
                    for page in doc
                ]
        except Exception as exc:
            raise PdfRenderError(f"pymupdf page rendering failed: {exc}") from exc
