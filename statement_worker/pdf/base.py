from abc import ABC, abstractmethod

from statement_worker.pdf.models import PdfText


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PdfText with pages joined by newlines and the page count.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """


class BasePageRenderer(ABC):
    """Contract for rendering PDF pages to images for vision extraction."""

    @abstractmethod
    def render(self, pdf_bytes: bytes) -> list[str]:
        """Render every page to a base64-encoded PNG, in page order.

        Raises:
            PdfRenderError: if the document cannot be rendered.
        """
