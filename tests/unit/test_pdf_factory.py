from unittest.mock import patch

import pytest

from statement_worker.pdf.factory import PdfExtractorFactory
from statement_worker.pdf.pdfplumber_adapter import PdfPlumberAdapter
from statement_worker.pdf.pymupdf_adapter import PyMuPdfAdapter, PyMuPdfPageRenderer


def _make_settings(pdf_engine: str, image_render_dpi: int = 150):  # type: ignore[no-untyped-def]
    """Create a minimal Settings-like object with only the PDF fields."""
    with patch("statement_worker.config.settings.Settings") as mock_cls:
        settings = mock_cls.return_value
        settings.pdf_engine = pdf_engine
        settings.image_render_dpi = image_render_dpi
        return settings


class TestPdfExtractorFactory:
    def test_creates_pdfplumber_adapter(self) -> None:
        settings = _make_settings("pdfplumber")
        adapter = PdfExtractorFactory.create(settings)
        assert isinstance(adapter, PdfPlumberAdapter)

    def test_creates_pymupdf_adapter(self) -> None:
        settings = _make_settings("pymupdf")
        adapter = PdfExtractorFactory.create(settings)
        assert isinstance(adapter, PyMuPdfAdapter)

    def test_is_case_insensitive(self) -> None:
        settings = _make_settings("PdfPlumber")
        adapter = PdfExtractorFactory.create(settings)
        assert isinstance(adapter, PdfPlumberAdapter)

    def test_raises_for_unknown_engine(self) -> None:
        settings = _make_settings("unknown")
        with pytest.raises(ValueError, match="Unknown PDF engine"):
            PdfExtractorFactory.create(settings)


class TestCreateRenderer:
    def test_creates_pymupdf_renderer(self) -> None:
        renderer = PdfExtractorFactory.create_renderer(_make_settings("pdfplumber", 200))
        assert isinstance(renderer, PyMuPdfPageRenderer)
