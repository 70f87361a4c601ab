class PdfExtractionError(Exception):
    """Raised when text cannot be extracted from a PDF."""


class PdfRenderError(PdfExtractionError):
    """Raised when PDF pages cannot be rendered to images."""
