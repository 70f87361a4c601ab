import logging

import pytest

from statement_worker.logging.logger import Log


class TestRender:
    def test_message_without_fields(self) -> None:
        assert Log._render("Worker started", {}) == "Worker started"

    def test_fields_rendered_as_pairs(self) -> None:
        rendered = Log._render("Chunk extracted", {"chunk": "2023-09", "count": 4})
        assert rendered == "Chunk extracted chunk=2023-09 count=4"


class TestEmit:
    def test_info_reaches_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="statement_worker"):
            Log.info("Document claimed", document_id="doc-1")

        assert "Document claimed document_id=doc-1" in caplog.text

    def test_warning_level(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="statement_worker"):
            Log.warning("Chunk failed")

        assert caplog.records[-1].levelno == logging.WARNING
