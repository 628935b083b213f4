# ============================================================================
# tests/unit/test_utils.py
# ============================================================================
"""
Tests for file and logging utilities
"""

import json
import logging

import pytest

from medical_insight.utils.exceptions import (
    AuthError,
    ExtractionError,
    MedicalInsightError,
    PipelineError,
    ServiceError,
)
from medical_insight.utils.file_utils import guess_mime_type, load_document, to_data_url
from medical_insight.utils.logging import JsonFormatter, log_performance


class TestMimeDetection:

    @pytest.mark.parametrize("filename,mime", [
        ("report.pdf", "application/pdf"),
        ("note.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        ("old.doc", "application/msword"),
        ("scan.PNG", "image/png"),
        ("labs.txt", "text/plain"),
    ])
    def test_by_extension(self, filename, mime):
        assert guess_mime_type(filename) == mime

    def test_by_magic_bytes(self):
        assert guess_mime_type("upload", b"%PDF-1.7 ...") == "application/pdf"
        assert guess_mime_type("upload", b"\xff\xd8\xff\xe0") == "image/jpeg"

    def test_unknown(self):
        assert guess_mime_type("upload", b"\x00\x00") == "application/octet-stream"

    def test_load_document(self, tmp_path):
        path = tmp_path / "labs.txt"
        path.write_bytes(b"Glucose 95 mg/dL")

        document = load_document(path)

        assert document.filename == "labs.txt"
        assert document.mime_type == "text/plain"
        assert document.size == 16

    def test_declared_mime_wins(self, tmp_path):
        path = tmp_path / "labs.txt"
        path.write_bytes(b"x")

        assert load_document(path, mime_type="application/pdf").mime_type == "application/pdf"

    def test_data_url(self, text_document):
        assert to_data_url(text_document("hi")) == "data:text/plain;base64,aGk="


class TestExceptions:

    def test_hierarchy(self):
        assert issubclass(PipelineError, ExtractionError)
        assert issubclass(AuthError, MedicalInsightError)
        assert issubclass(ServiceError, MedicalInsightError)

    def test_service_error_status(self):
        assert ServiceError("bad gateway", status=502).status == 502


class TestLogging:

    def test_json_formatter(self):
        record = logging.LogRecord("medical_insight.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        record.context = {"record_id": "rec-1"}

        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["context"] == {"record_id": "rec-1"}

    def test_log_performance(self, caplog):
        logger = logging.getLogger("medical_insight.test")

        @log_performance(logger, "square")
        def square(x):
            return x * x

        with caplog.at_level(logging.DEBUG, logger="medical_insight.test"):
            assert square(4) == 16

        assert "square completed" in caplog.text

    def test_log_performance_reraises(self, caplog):
        logger = logging.getLogger("medical_insight.test")

        @log_performance(logger, "explode")
        def explode():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            explode()
        assert "explode failed" in caplog.text
