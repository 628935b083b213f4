# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

from typing import List, Optional

import pytest

from medical_insight.constants.vocabulary import load_vocabulary
from medical_insight.core.document_store import InMemoryAnalysisStore
from medical_insight.core.models import ExtractionResult, RawDocument
from medical_insight.extractors.entity_extractor import EntityExtractor
from medical_insight.insight.base import BackendType, BaseInsightClient
from medical_insight.utils.exceptions import ExtractionError


@pytest.fixture
def sample_note_text():
    """Short clinical note with one entity of most kinds"""
    return "Patient on Lisinopril 10mg, BP 145/92 mmHg, seen by Dr. Sarah Johnson on 2024-01-15"


@pytest.fixture
def sample_lab_text():
    """Sample lab report text for testing"""
    return """
    Quest Diagnostics Laboratory Report

    Patient: John Doe
    Date: 01/15/2024

    Blood Test Results
    Glucose             110 mg/dL
    Hemoglobin          14.2 g/dL
    Total Cholesterol   215 mg/dL
    HbA1c               6.1%

    Ordering physician: Dr. Emily Carter, MD
    Follow up in 3 months for diabetes screening.
    """


@pytest.fixture
def sample_radiology_text():
    """Sample radiology report text"""
    return """
    RADIOLOGY REPORT

    Examination: Chest X-Ray PA and Lateral
    Date: March 3, 2024

    FINDINGS:
    The lungs are clear without focal consolidation, effusion, or pneumothorax.

    IMPRESSION:
    Normal chest radiograph. Routine follow-up not required.
    """


@pytest.fixture
def sample_prescription_text():
    """Sample prescription text"""
    return """
    Rx: Metformin 500 mg twice daily
    Atorvastatin 20 mg at bedtime
    Refills: 3
    Prescriber: Dr. Alan Brooks, DO
    """


@pytest.fixture
def vocabulary():
    """Packaged vocabulary table"""
    return load_vocabulary()


@pytest.fixture
def entity_extractor(vocabulary):
    """EntityExtractor on the packaged vocabulary"""
    return EntityExtractor(vocabulary=vocabulary)


@pytest.fixture
def memory_store():
    """Fresh in-memory analysis store"""
    return InMemoryAnalysisStore()


@pytest.fixture
def text_document():
    """Plain-text upload"""
    def _make(text: str, filename: str = "note.txt", mime_type: str = "text/plain") -> RawDocument:
        return RawDocument(content=text.encode("utf-8"), mime_type=mime_type, filename=filename)
    return _make


class FakeInsightClient(BaseInsightClient):
    """
    In-process insight client.

    Returns `response` or raises `error`; records every request.
    """

    def __init__(self, response: str = "", error: Optional[BaseException] = None, configured: bool = True):
        super().__init__({})
        self.response = response
        self.error = error
        self.configured = configured
        self.calls: List[tuple] = []
        self.closed = False

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OPENAI

    @property
    def model_name(self) -> str:
        return "fake-model"

    def is_configured(self) -> bool:
        return self.configured

    async def request(self, document_ref, filename, document_text=None) -> str:
        self.calls.append((document_ref, filename, document_text))
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client():
    """Factory for FakeInsightClient"""
    return FakeInsightClient


class StubExtractor:
    """Text extractor stand-in returning a fixed result or raising"""

    def __init__(self, result: Optional[ExtractionResult] = None, error: Optional[BaseException] = None):
        self.result = result
        self.error = error
        self.calls = 0

    def extract(self, document: RawDocument) -> ExtractionResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def stub_extractor():
    """Factory for StubExtractor"""
    return StubExtractor


@pytest.fixture
def failing_extractor():
    """Extractor that always raises ExtractionError"""
    return StubExtractor(error=ExtractionError("boom"))
