# ============================================================================
# tests/unit/test_document_pipeline.py
# ============================================================================
"""
Tests for DocumentAnalysisPipeline
"""

import pytest

from medical_insight.constants import CATEGORY_LABELS
from medical_insight.core.confidence import ConfidenceAggregator, ConfidencePolicy
from medical_insight.core.document_pipeline import DocumentAnalysisPipeline
from medical_insight.core.models import DocumentAnalysis, ExtractionResult, RawDocument
from medical_insight.utils.exceptions import ExtractionError, PipelineError


@pytest.fixture
def pipeline_with(entity_extractor):
    """Build a pipeline around the given text extractors"""
    def _build(primary, fallback):
        return DocumentAnalysisPipeline(
            primary_extractor=primary,
            fallback_extractor=fallback,
            entity_extractor=entity_extractor,
            aggregator=ConfidenceAggregator(ConfidencePolicy())
        )
    return _build


class TestDocumentAnalysisPipeline:

    def test_plain_text_document(self, entity_extractor, text_document, sample_lab_text):
        pipeline = DocumentAnalysisPipeline(entity_extractor=entity_extractor)

        result = pipeline.run(text_document(sample_lab_text, filename="labs.txt"))

        assert isinstance(result.analysis, DocumentAnalysis)
        assert result.strategy == "primary"
        assert result.analysis.category == "Lab Results"
        assert result.analysis.extracted_text == sample_lab_text
        assert result.analysis.entities.count() > 0
        assert result.processing_time >= 0

    def test_unknown_type_completes_as_general(self, entity_extractor):
        pipeline = DocumentAnalysisPipeline(entity_extractor=entity_extractor)
        document = RawDocument(b"\x89\x00\x13", "application/x-unknown", "blob.bin")

        analysis = pipeline.analyze(document)

        assert analysis.category == "General"
        assert analysis.confidence == pytest.approx(0.10)
        assert "Unable to extract" in analysis.extracted_text

    def test_fallback_used_when_primary_fails(self, pipeline_with, stub_extractor, failing_extractor):
        fallback = stub_extractor(ExtractionResult("Seen by Dr. Sarah Johnson", 0.82, method="stub"))
        pipeline = pipeline_with(failing_extractor, fallback)

        result = pipeline.run(RawDocument(b"x", "application/pdf", "note.pdf"))

        assert result.strategy == "fallback"
        assert fallback.calls == 1
        assert result.analysis.entities.providers[0].text == "Dr. Sarah Johnson"
        assert result.analysis.confidence == pytest.approx(0.84)

    def test_fallback_not_called_on_success(self, pipeline_with, stub_extractor):
        primary = stub_extractor(ExtractionResult("routine visit", 0.95))
        fallback = stub_extractor(ExtractionResult("unused", 0.82))

        pipeline_with(primary, fallback).analyze(RawDocument(b"x", "text/plain", "a.txt"))

        assert primary.calls == 1
        assert fallback.calls == 0

    def test_fallback_after_unexpected_error(self, pipeline_with, stub_extractor):
        primary = stub_extractor(error=RuntimeError("decoder crashed"))
        fallback = stub_extractor(ExtractionResult("annual visit", 0.82))

        analysis = pipeline_with(primary, fallback).analyze(RawDocument(b"x", "text/plain", "a.txt"))

        assert analysis.category == "Visit Notes"
        assert "Routine" in analysis.tags

    def test_double_failure_raises_pipeline_error(self, pipeline_with, stub_extractor):
        primary_error = ExtractionError("primary broke")
        fallback_error = ExtractionError("fallback broke")
        pipeline = pipeline_with(stub_extractor(error=primary_error), stub_extractor(error=fallback_error))

        with pytest.raises(PipelineError) as exc_info:
            pipeline.analyze(RawDocument(b"x", "application/pdf", "broken.pdf"))

        assert str(exc_info.value) == "could not process this document"
        assert exc_info.value.primary_error is primary_error
        assert exc_info.value.fallback_error is fallback_error
        assert isinstance(exc_info.value, ExtractionError)

    @pytest.mark.parametrize("text,ocr", [
        ("", 0.0),
        ("Hello world", 1.0),
        ("Rx: Lisinopril 10mg, BP 145/92 mmHg, Dr. Sarah Johnson, 2024-01-15", 0.97),
        ("Influenza vaccine given", 0.3),
    ])
    def test_analysis_invariants(self, pipeline_with, stub_extractor, text, ocr):
        pipeline = pipeline_with(stub_extractor(ExtractionResult(text, ocr)), stub_extractor())

        analysis = pipeline.analyze(RawDocument(b"x", "text/plain", "doc.txt"))

        assert analysis.category in CATEGORY_LABELS
        assert 0.0 <= analysis.confidence <= 1.0
        assert analysis.confidence >= ocr
        assert analysis.extracted_text == text

    def test_to_dict(self, pipeline_with, stub_extractor, sample_note_text):
        pipeline = pipeline_with(stub_extractor(ExtractionResult(sample_note_text, 0.92)), stub_extractor())

        data = pipeline.analyze(RawDocument(b"x", "text/plain", "doc.txt")).to_dict()

        assert set(data) == {"category", "tags", "extractedText", "confidence", "entities"}
        assert data["entities"]["medications"][0]["text"] == "Lisinopril"
        assert data["entities"]["medications"][0]["category"] == "medication"
