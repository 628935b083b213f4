# ============================================================================
# tests/unit/test_entity_extractor.py
# ============================================================================
"""
Unit tests for rule-based entity extraction
"""

import pytest

from medical_insight.core.models import EntityCategory, EntitySet
from medical_insight.extractors.entity_extractor import (
    EntityExtractor,
    build_provider_pattern,
    build_unit_pattern,
)


class TestClinicalNote:
    """Entities in a short clinical note"""

    def test_note_entities(self, entity_extractor, sample_note_text):
        entities = entity_extractor.extract(sample_note_text)

        assert entities.texts(EntityCategory.MEDICATION) == ["Lisinopril"]
        assert "145/92 mmHg" in entities.texts(EntityCategory.MEASUREMENT)
        assert entities.texts(EntityCategory.PROVIDER) == ["Dr. Sarah Johnson"]
        assert entities.texts(EntityCategory.DATE) == ["2024-01-15"]

    def test_extraction_is_deterministic(self, entity_extractor, sample_note_text):
        first = entity_extractor.extract(sample_note_text)
        second = entity_extractor.extract(sample_note_text)

        assert first == second

    def test_empty_text(self, entity_extractor):
        entities = entity_extractor.extract("")

        assert isinstance(entities, EntitySet)
        assert len(entities) == 0
        assert set(entities.to_dict()) == {
            "conditions", "medications", "procedures", "dates", "providers", "measurements"
        }

    def test_none_text(self, entity_extractor):
        assert len(entity_extractor.extract(None)) == 0


class TestVocabularyMatching:
    """Conditions, procedures and medications"""

    def test_conditions_case_insensitive(self, entity_extractor):
        entities = entity_extractor.extract("History of DIABETES and Hypertension.")

        assert entities.texts(EntityCategory.CONDITION) == ["diabetes", "hypertension"]

    def test_condition_found_once_per_term(self, entity_extractor):
        entities = entity_extractor.extract("asthma, asthma, asthma")

        assert entities.texts(EntityCategory.CONDITION) == ["asthma"]

    def test_medication_repeats_kept(self, entity_extractor):
        entities = entity_extractor.extract("Aspirin 81 mg daily. Continue aspirin after surgery.")

        assert entities.texts(EntityCategory.MEDICATION) == ["Aspirin", "aspirin"]

    def test_medication_whole_word_only(self, entity_extractor):
        entities = entity_extractor.extract("Metforminum is not on the list")

        assert entities.count(EntityCategory.MEDICATION) == 0

    def test_procedures(self, entity_extractor, sample_radiology_text):
        entities = entity_extractor.extract(sample_radiology_text)

        assert "x-ray" in entities.texts(EntityCategory.PROCEDURE)

    def test_lab_report(self, entity_extractor, sample_lab_text):
        entities = entity_extractor.extract(sample_lab_text)

        assert "diabetes" in entities.texts(EntityCategory.CONDITION)
        assert "cholesterol" in entities.texts(EntityCategory.CONDITION)
        assert "blood test" in entities.texts(EntityCategory.PROCEDURE)

    def test_extended_vocabulary(self, vocabulary):
        extractor = EntityExtractor(vocabulary=vocabulary.extend(medications=["Semaglutide"]))
        entities = extractor.extract("Started semaglutide weekly")

        assert entities.texts(EntityCategory.MEDICATION) == ["semaglutide"]


class TestPatterns:
    """Dates, providers and measurements"""

    @pytest.mark.parametrize("text,expected", [
        ("Seen 01/15/2024 in clinic", "01/15/2024"),
        ("Collected 2024-01-15", "2024-01-15"),
        ("Report date: March 3, 2024", "March 3, 2024"),
        ("Report date: march 3 2024", "march 3 2024"),
    ])
    def test_dates(self, entity_extractor, text, expected):
        assert entity_extractor.extract(text).texts(EntityCategory.DATE) == [expected]

    def test_provider_with_credential(self, entity_extractor, sample_lab_text):
        providers = entity_extractor.extract(sample_lab_text).texts(EntityCategory.PROVIDER)

        assert providers == ["Dr. Emily Carter, MD"]

    def test_provider_without_period(self, entity_extractor):
        providers = entity_extractor.extract("Referred by Dr Patel").texts(EntityCategory.PROVIDER)

        assert providers == ["Dr Patel"]

    def test_provider_stops_at_line_end(self, entity_extractor):
        text = "Seen by Dr. Emily Carter\nFollow up soon"

        providers = entity_extractor.extract(text).texts(EntityCategory.PROVIDER)

        assert providers == ["Dr. Emily Carter"]

    def test_lab_measurements(self, entity_extractor, sample_lab_text):
        measurements = entity_extractor.extract(sample_lab_text).texts(EntityCategory.MEASUREMENT)

        assert "110 mg/dL" in measurements
        assert "14.2 g/dL" in measurements
        assert "6.1%" in measurements

    def test_unit_pattern_prefers_longest_unit(self):
        pattern = build_unit_pattern(["g/dL", "mg/dL"])

        assert pattern.search("Glucose 95 mg/dL").group(0) == "95 mg/dL"

    def test_unit_pattern_needs_unit_boundary(self):
        pattern = build_unit_pattern(["in"])

        assert pattern.search("5 inhalers") is None
        assert pattern.search("height 70 in").group(0) == "70 in"

    def test_provider_pattern_without_credentials(self):
        pattern = build_provider_pattern([])

        assert pattern.search("Dr. Jane Roe MD").group(0) == "Dr. Jane Roe"

    def test_entity_confidences(self, entity_extractor, sample_note_text):
        entities = entity_extractor.extract(sample_note_text)

        for entity in entities:
            assert 0.0 <= entity.confidence <= 1.0
        assert entities.medications[0].confidence == pytest.approx(0.90)
        assert entities.dates[0].confidence == pytest.approx(0.95)
