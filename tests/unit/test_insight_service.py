# ============================================================================
# tests/unit/test_insight_service.py
# ============================================================================
"""
Tests for the insight request state machine
"""

import json
from unittest.mock import Mock

import aiohttp
import pytest

from medical_insight.core.models import RawDocument
from medical_insight.insight.parser import DEFAULT_RECOMMENDATIONS, InsightState, ResilientInsightParser
from medical_insight.insight.service import InsightService
from medical_insight.utils.exceptions import AuthError, ServiceError, StoreError


REPORT_JSON = json.dumps({
    "summary": "Normal complete blood count.",
    "keyFindings": ["All values within reference range"],
    "recommendations": ["Keep routine annual checkups"],
    "medicalTerms": ["CBC"],
    "metrics": [],
    "urgentItems": [],
    "confidence": 0.92,
    "category": "Laboratory Results",
})


@pytest.fixture
def service_with(vocabulary, memory_store):
    """Build an InsightService around a client"""
    def _build(client, store=memory_store):
        return InsightService(
            client=client,
            parser=ResilientInsightParser(vocabulary=vocabulary),
            store=store
        )
    return _build


class TestInsightService:

    async def test_json_response(self, service_with, fake_client):
        client = fake_client(response=f"Here you go:\n{REPORT_JSON}")

        outcome = await service_with(client).run("https://example.org/cbc.png", "cbc.png")

        assert outcome.path == (
            InsightState.REQUESTING, InsightState.PARSED_JSON, InsightState.VALIDATED
        )
        assert outcome.state == InsightState.PARSED_JSON
        assert outcome.report.category == "Laboratory Results"
        assert outcome.report.confidence == pytest.approx(0.92)
        assert len(outcome.report.recommendations) == 4
        assert outcome.report.recommendations[0] == "Keep routine annual checkups"

    async def test_free_text_response(self, service_with, fake_client):
        client = fake_client(response="Blood sugar is high. You should see your doctor soon.")

        outcome = await service_with(client).run(None, "labs.pdf", "Glucose 210 mg/dL")

        assert outcome.state == InsightState.PARSED_FROM_FREE_TEXT
        assert outcome.report.recommendations[0] == "You should see your doctor soon"
        assert client.calls == [(None, "labs.pdf", "Glucose 210 mg/dL")]

    @pytest.mark.parametrize("error", [
        ServiceError("HTTP 500", status=500),
        aiohttp.ClientConnectionError("connection reset"),
        TimeoutError(),
        ValueError("unexpected payload"),
    ])
    async def test_transport_error_recovers(self, service_with, fake_client, error):
        client = fake_client(error=error)

        outcome = await service_with(client).run("https://example.org/x.png", "x.png")

        assert outcome.state == InsightState.SERVICE_FAILED
        assert outcome.path[-1] == InsightState.VALIDATED
        assert outcome.report.category == "Medical Document"
        assert outcome.report.recommendations == DEFAULT_RECOMMENDATIONS
        assert 0.75 <= outcome.report.confidence <= 0.85

    async def test_auth_error_before_request(self, service_with, fake_client):
        client = fake_client(response=REPORT_JSON, configured=False)

        with pytest.raises(AuthError):
            await service_with(client).run("https://example.org/x.png", "x.png")

        assert client.calls == []

    async def test_auth_error_from_client_propagates(self, service_with, fake_client):
        client = fake_client(error=AuthError("key revoked"))

        with pytest.raises(AuthError):
            await service_with(client).run(None, "x.pdf", "text")

    async def test_report_persisted(self, service_with, fake_client, memory_store):
        outcome = await service_with(fake_client(response=REPORT_JSON)).run(None, "cbc.pdf", "CBC")

        assert outcome.record_id is not None
        assert memory_store.get(outcome.record_id) == outcome.report.to_dict()
        assert memory_store.count("insight_report") == 1

    async def test_explicit_record_id(self, service_with, fake_client, memory_store):
        outcome = await service_with(fake_client(response=REPORT_JSON)).run(
            None, "cbc.pdf", "CBC", record_id="rec-1"
        )

        assert outcome.record_id == "rec-1"
        assert memory_store.get("rec-1")["category"] == "Laboratory Results"

    async def test_store_failure_not_fatal(self, service_with, fake_client):
        store = Mock()
        store.save.side_effect = StoreError("disk full")

        outcome = await service_with(fake_client(response=REPORT_JSON), store=store).run(
            None, "cbc.pdf", "CBC"
        )

        assert outcome.report.category == "Laboratory Results"
        store.save.assert_called_once()

    async def test_no_store(self, service_with, fake_client):
        outcome = await service_with(fake_client(response=REPORT_JSON), store=None).run(
            None, "cbc.pdf", "CBC"
        )

        assert outcome.record_id is None

    async def test_analyze_returns_report(self, service_with, fake_client):
        report = await service_with(fake_client(response=REPORT_JSON)).analyze(None, "cbc.pdf", "CBC")

        assert report.summary == "Normal complete blood count."

    async def test_image_document_sent_as_data_url(self, service_with, fake_client):
        client = fake_client(response=REPORT_JSON)
        document = RawDocument(b"\x89PNG\r\n\x1a\nrest", "image/png", "rx.png")

        await service_with(client).analyze_document(document)

        document_ref, filename, document_text = client.calls[0]
        assert document_ref.startswith("data:image/png;base64,")
        assert filename == "rx.png"
        assert document_text is None

    async def test_text_document_sent_as_text(self, service_with, fake_client):
        client = fake_client(response=REPORT_JSON)
        document = RawDocument(b"%PDF", "application/pdf", "labs.pdf")

        await service_with(client).analyze_document(document, document_text="Glucose 95 mg/dL")

        assert client.calls[0] == (None, "labs.pdf", "Glucose 95 mg/dL")
