# ============================================================================
# tests/unit/test_document_store.py
# ============================================================================
"""
Tests for the analysis stores
"""

import sqlite3

import pytest

from medical_insight.core.document_store import (
    InMemoryAnalysisStore,
    SQLiteAnalysisStore,
    record_type_of,
)
from medical_insight.core.models import (
    DocumentAnalysis,
    Entity,
    EntityCategory,
    EntitySet,
    MedicalInsightReport,
)
from medical_insight.utils.exceptions import StoreError


@pytest.fixture
def analysis():
    return DocumentAnalysis(
        category="Prescriptions",
        tags=frozenset({"Hypertension", "Follow-up"}),
        extracted_text="Rx: Lisinopril 10mg",
        confidence=0.94,
        entities=EntitySet.from_entities([
            Entity("Lisinopril", EntityCategory.MEDICATION, 0.9),
        ])
    )


@pytest.fixture
def report():
    return MedicalInsightReport(
        summary="Refill of blood pressure medication.",
        key_findings=("Lisinopril 10mg",),
        recommendations=("a", "b", "c", "d"),
        category="Prescription Document"
    )


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    """Each store implementation"""
    if request.param == "sqlite":
        return SQLiteAnalysisStore(tmp_path / "db" / "analyses.db")
    return InMemoryAnalysisStore()


class TestAnalysisStore:

    def test_save_and_get(self, store, analysis):
        store.save("rec-1", analysis)

        record = store.get("rec-1")

        assert record == analysis.to_dict()
        assert record["tags"] == ["Follow-up", "Hypertension"]
        assert record["entities"]["medications"][0]["text"] == "Lisinopril"

    def test_returned_records_are_copies(self, store, analysis):
        store.save("rec-1", analysis)

        store.get("rec-1")["entities"]["medications"].clear()
        store.list_all()[0]["tags"].append("Tampered")

        assert store.get("rec-1") == analysis.to_dict()

    def test_get_missing(self, store):
        assert store.get("nope") is None

    def test_save_replaces(self, store, analysis, report):
        store.save("rec-1", analysis)
        store.save("rec-1", report)

        assert store.get("rec-1")["summary"] == report.summary
        assert store.count() == 1

    def test_list_and_count_by_type(self, store, analysis, report):
        store.save("a1", analysis)
        store.save("r1", report)
        store.save("a2", analysis)

        assert store.count() == 3
        assert store.count("document_analysis") == 2
        assert store.count("insight_report") == 1
        assert len(store.list_all(record_type="document_analysis")) == 2
        assert store.list_all(record_type="insight_report") == [report.to_dict()]
        assert len(store.list_all(limit=1)) == 1

    def test_delete(self, store, analysis):
        store.save("rec-1", analysis)

        assert store.delete("rec-1") is True
        assert store.delete("rec-1") is False
        assert store.get("rec-1") is None

    def test_report_round_trip(self, store, report):
        store.save("r1", report)

        assert MedicalInsightReport.from_dict(store.get("r1")) == report


class TestSQLiteAnalysisStore:

    def test_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "store.db"

        SQLiteAnalysisStore(db_path)

        assert db_path.exists()

    def test_persists_across_instances(self, tmp_path, analysis):
        db_path = tmp_path / "store.db"
        SQLiteAnalysisStore(db_path).save("rec-1", analysis)

        assert SQLiteAnalysisStore(db_path).get("rec-1")["category"] == "Prescriptions"

    def test_indexed_columns(self, tmp_path, analysis):
        db_path = tmp_path / "store.db"
        SQLiteAnalysisStore(db_path).save("rec-1", analysis)

        with sqlite3.connect(str(db_path)) as conn:
            row = conn.execute(
                "SELECT record_type, category, confidence FROM analyses WHERE record_id = ?",
                ("rec-1",)
            ).fetchone()

        assert row == ("document_analysis", "Prescriptions", 0.94)

    def test_broken_database_raises_store_error(self, tmp_path):
        db_path = tmp_path / "store.db"
        store = SQLiteAnalysisStore(db_path)
        db_path.write_bytes(b"this is not a sqlite database" * 100)

        with pytest.raises(StoreError):
            store.get("rec-1")


def test_record_type_of(analysis, report):
    assert record_type_of(analysis) == "document_analysis"
    assert record_type_of(report) == "insight_report"
    assert record_type_of({"recordType": "custom"}) == "custom"
    assert record_type_of({}) == "record"
