# src/medical_insight/extractors/entity_extractor.py
"""
Rule-based medical entity extraction.

Six passes over the text, one per EntityCategory:
- conditions / procedures: case-insensitive substring match against the
  vocabulary; one entity per vocabulary term found
- medications: whole-word regex per drug name; one entity per occurrence,
  keeping the text as written
- dates: MM/DD/YYYY, ISO YYYY-MM-DD, "Month D, YYYY"
- providers: "Dr"/"Dr." + capitalized name tokens on one line + optional credential
- measurements: value + clinical unit, N/N mmHg pairs, bare percentages

Pure and deterministic: the same text always yields the same EntitySet.
"""

import logging
import re
from typing import Dict, List, Optional, Pattern, Sequence

from ..constants.vocabulary import MedicalVocabulary, load_vocabulary
from ..core.models import Entity, EntityCategory, EntitySet


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December"
)

DATE_PATTERNS = (
    re.compile(r'\b\d{1,2}/\d{1,2}/\d{4}\b'),
    re.compile(r'\b\d{4}-\d{2}-\d{2}\b'),
    re.compile(r'\b(?:' + '|'.join(MONTH_NAMES) + r')\s+\d{1,2},?\s+\d{4}\b', re.IGNORECASE),
)

BLOOD_PRESSURE_PATTERN = re.compile(r'\d+\.?\d*/\d+\.?\d*\s*mmHg', re.IGNORECASE)
PERCENTAGE_PATTERN = re.compile(r'\d+\.?\d*%')


def _credential_fragment(credential: str) -> str:
    # "MD" -> M\.?D\.?  (matches MD, M.D., M.D)
    return r'\.?'.join(re.escape(ch) for ch in credential) + r'\.?'


def build_provider_pattern(credentials: Sequence[str]) -> Pattern:
    name = r'\bDr\.?[ \t]+[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)*'
    if not credentials:
        return re.compile(name)
    creds = '|'.join(_credential_fragment(c) for c in credentials)
    return re.compile(name + r'(?:,?[ \t]*(?:' + creds + r')(?![A-Za-z]))?')


def build_unit_pattern(units: Sequence[str]) -> Pattern:
    # Longest units first so "mg/dL" wins over "g/dL"
    ordered = sorted(units, key=len, reverse=True)
    return re.compile(
        r'\d+\.?\d*\s*(?:' + '|'.join(re.escape(u) for u in ordered) + r')(?![A-Za-z])',
        re.IGNORECASE
    )


class EntityExtractor:
    """
    Extracts condition, medication, procedure, date, provider and
    measurement entities from text.

    Vocabulary and per-category confidences are injected; patterns are
    compiled once per instance.
    """

    def __init__(
        self,
        vocabulary: Optional[MedicalVocabulary] = None,
        confidences: Optional[Dict[EntityCategory, float]] = None
    ):
        self.logger = logging.getLogger(__name__)
        self.vocabulary = vocabulary or load_vocabulary()
        self.confidences = confidences or self._default_confidences()

        self._medication_patterns = [
            re.compile(r'\b' + re.escape(term) + r'\b', re.IGNORECASE)
            for term in self.vocabulary.medications
        ]
        self._provider_pattern = build_provider_pattern(self.vocabulary.provider_credentials)
        self._measurement_patterns = (
            build_unit_pattern(self.vocabulary.measurement_units),
            BLOOD_PRESSURE_PATTERN,
            PERCENTAGE_PATTERN,
        )

    @staticmethod
    def _default_confidences() -> Dict[EntityCategory, float]:
        from ..config import threshold_settings as t
        return {
            EntityCategory.CONDITION: t.CONDITION_CONFIDENCE,
            EntityCategory.MEDICATION: t.MEDICATION_CONFIDENCE,
            EntityCategory.PROCEDURE: t.PROCEDURE_CONFIDENCE,
            EntityCategory.DATE: t.DATE_CONFIDENCE,
            EntityCategory.PROVIDER: t.PROVIDER_CONFIDENCE,
            EntityCategory.MEASUREMENT: t.MEASUREMENT_CONFIDENCE,
        }

    def extract(self, text: str) -> EntitySet:
        """
        Extract all entity categories from text.

        Never raises; empty or missing text yields an empty EntitySet.
        """
        text = text or ""
        lowered = text.lower()

        entity_set = EntitySet(
            conditions=tuple(self.extract_conditions(lowered)),
            medications=tuple(self.extract_medications(text)),
            procedures=tuple(self.extract_procedures(lowered)),
            dates=tuple(self.extract_dates(text)),
            providers=tuple(self.extract_providers(text)),
            measurements=tuple(self.extract_measurements(text)),
        )

        self.logger.debug(
            f"Extracted {len(entity_set)} entities "
            f"(vocabulary v{self.vocabulary.version}, {len(text)} chars)"
        )
        return entity_set

    def _entity(self, text: str, category: EntityCategory) -> Entity:
        return Entity(text=text, category=category, confidence=self.confidences[category])

    def extract_conditions(self, lowered: str) -> List[Entity]:
        return [
            self._entity(term, EntityCategory.CONDITION)
            for term in self.vocabulary.conditions
            if term in lowered
        ]

    def extract_procedures(self, lowered: str) -> List[Entity]:
        return [
            self._entity(term, EntityCategory.PROCEDURE)
            for term in self.vocabulary.procedures
            if term in lowered
        ]

    def extract_medications(self, text: str) -> List[Entity]:
        entities = []
        for pattern in self._medication_patterns:
            for match in pattern.finditer(text):
                entities.append(self._entity(match.group(0), EntityCategory.MEDICATION))
        return entities

    def extract_dates(self, text: str) -> List[Entity]:
        return self._match_all(DATE_PATTERNS, text, EntityCategory.DATE)

    def extract_providers(self, text: str) -> List[Entity]:
        return self._match_all((self._provider_pattern,), text, EntityCategory.PROVIDER)

    def extract_measurements(self, text: str) -> List[Entity]:
        return self._match_all(self._measurement_patterns, text, EntityCategory.MEASUREMENT)

    def _match_all(
        self,
        patterns: Sequence[Pattern],
        text: str,
        category: EntityCategory
    ) -> List[Entity]:
        return [
            self._entity(match.group(0).strip(), category)
            for pattern in patterns
            for match in pattern.finditer(text)
        ]
