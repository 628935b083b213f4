# ============================================================================
# src/medical_insight/classifiers/document_classifier.py
# ============================================================================
"""
Document Classification and Tagging

Category: prioritized rule chain over filename + text (lowercased) and
entity counts. Rules run in a fixed order and the first match wins:

1. Prescriptions  - medications found AND "prescription"/"rx"
2. Lab Results    - more than LAB_MEASUREMENT_THRESHOLD measurements AND "blood"/"lab"/"test"
3. Imaging        - a procedure entity mentions x-ray / ct / mri / ultrasound
4. Visit Notes    - "visit"/"consultation"/"appointment"
5. Vaccinations   - "vaccination"/"vaccine"/"immunization"
6. Procedures     - "surgery"/"procedure"/"operation"
7. Insurance      - "insurance"/"claim"/"coverage"
8. General        - fallback

Tags: independent of category and purely additive; derived from condition
entities, procedure entities and urgency markers in the text.
"""

from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Pattern, Tuple
import logging
import re

from ..constants import DocumentCategory
from ..constants.vocabulary import MedicalVocabulary, load_vocabulary
from ..core.models import EntityCategory, EntitySet


@dataclass(frozen=True)
class ClassificationRule:
    """One link of the category rule chain."""
    category: DocumentCategory
    keywords: Tuple[str, ...] = ()
    # Extra entity-based condition; keywords (if any) must also match
    requires: Optional[Callable[[EntitySet], bool]] = None

    def matches(self, haystack: str, entities: EntitySet) -> bool:
        if self.requires is not None and not self.requires(entities):
            return False
        if self.keywords and not any(keyword in haystack for keyword in self.keywords):
            return False
        return True


class DocumentClassifier:
    """
    Assigns one DocumentCategory label and a set of tags to a document.
    """

    def __init__(
        self,
        vocabulary: Optional[MedicalVocabulary] = None,
        lab_measurement_threshold: Optional[int] = None
    ):
        if lab_measurement_threshold is None:
            from ..config import threshold_settings
            lab_measurement_threshold = threshold_settings.LAB_MEASUREMENT_THRESHOLD

        self.logger = logging.getLogger(__name__)
        self.vocabulary = vocabulary or load_vocabulary()
        self.lab_measurement_threshold = lab_measurement_threshold
        self.rules = self._build_rules()
        self._text_tag_patterns: List[Tuple[str, Tuple[Pattern, ...]]] = [
            (tag, tuple(re.compile(p, re.IGNORECASE) for p in patterns))
            for tag, patterns in self.vocabulary.text_tag_patterns
        ]

    def _build_rules(self) -> List[ClassificationRule]:
        imaging_terms = self.vocabulary.imaging_procedure_terms
        threshold = self.lab_measurement_threshold

        def has_imaging_procedure(entities: EntitySet) -> bool:
            return any(
                term in procedure.lower()
                for procedure in entities.texts(EntityCategory.PROCEDURE)
                for term in imaging_terms
            )

        return [
            ClassificationRule(
                DocumentCategory.PRESCRIPTIONS,
                keywords=("prescription", "rx"),
                requires=lambda e: e.count(EntityCategory.MEDICATION) > 0
            ),
            ClassificationRule(
                DocumentCategory.LAB_RESULTS,
                keywords=("blood", "lab", "test"),
                requires=lambda e: e.count(EntityCategory.MEASUREMENT) > threshold
            ),
            ClassificationRule(DocumentCategory.IMAGING, requires=has_imaging_procedure),
            ClassificationRule(
                DocumentCategory.VISIT_NOTES,
                keywords=("visit", "consultation", "appointment")
            ),
            ClassificationRule(
                DocumentCategory.VACCINATIONS,
                keywords=("vaccination", "vaccine", "immunization")
            ),
            ClassificationRule(
                DocumentCategory.PROCEDURES,
                keywords=("surgery", "procedure", "operation")
            ),
            ClassificationRule(
                DocumentCategory.INSURANCE,
                keywords=("insurance", "claim", "coverage")
            ),
        ]

    def classify(
        self,
        filename: str,
        text: str,
        entities: EntitySet
    ) -> Tuple[str, FrozenSet[str]]:
        """
        Returns:
            (category label, tags)
        """
        category = self.categorize(filename, text, entities)
        tags = self.generate_tags(text, entities)
        self.logger.debug(f"Classified {filename!r} as {category} with tags {sorted(tags)}")
        return category, tags

    def categorize(self, filename: str, text: str, entities: EntitySet) -> str:
        haystack = f"{filename or ''} {text or ''}".lower()

        for rule in self.rules:
            if rule.matches(haystack, entities):
                return rule.category.value

        return DocumentCategory.GENERAL.value

    def generate_tags(self, text: str, entities: EntitySet) -> FrozenSet[str]:
        tags = set()

        for condition in entities.texts(EntityCategory.CONDITION):
            condition = condition.lower()
            for keyword, tag in self.vocabulary.condition_tags:
                if keyword in condition:
                    tags.add(tag)

        for procedure in entities.texts(EntityCategory.PROCEDURE):
            procedure = procedure.lower()
            for keyword, tag in self.vocabulary.procedure_tags:
                if keyword in procedure:
                    tags.add(tag)

        text = text or ""
        for tag, patterns in self._text_tag_patterns:
            if any(pattern.search(text) for pattern in patterns):
                tags.add(tag)

        return frozenset(tags)
