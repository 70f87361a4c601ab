from statement_worker.config.settings import Settings
from statement_worker.pdf.base import BasePageRenderer, BasePdfExtractor
from statement_worker.pdf.pdfplumber_adapter import PdfPlumberAdapter
from statement_worker.pdf.pymupdf_adapter import PyMuPdfAdapter, PyMuPdfPageRenderer


class PdfExtractorFactory:
    """Creates the correct PDF extractor based on settings."""

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()

    @classmethod
    def create_renderer(cls, settings: Settings) -> BasePageRenderer:
        return PyMuPdfPageRenderer(dpi=settings.image_render_dpi)
