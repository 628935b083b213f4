# ============================================================================
# src/medical_insight/core/models.py
# ============================================================================
"""
Data model for the document analysis pipeline.

Lifecycle:
- RawDocument: created by the caller, consumed by the pipeline
- ExtractionResult / EntitySet: transient intermediates
- DocumentAnalysis / MedicalInsightReport: the records handed to an AnalysisStore

to_dict() produces the camelCase wire form used by the API and the stores.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Sequence, Tuple


class EntityCategory(str, Enum):
    """Categories of recognized domain entities."""
    CONDITION = "condition"
    MEDICATION = "medication"
    PROCEDURE = "procedure"
    DATE = "date"
    PROVIDER = "provider"
    MEASUREMENT = "measurement"


@dataclass(frozen=True)
class RawDocument:
    """Uploaded document bytes with declared MIME type and filename."""
    content: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction attempt."""
    text: str
    confidence: float
    language: str = "en"
    method: str = "unknown"


@dataclass(frozen=True)
class Entity:
    """Recognized entity. Value object: equality is the whole tuple."""
    text: str
    category: EntityCategory
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'category': self.category.value,
            'confidence': self.confidence
        }


@dataclass(frozen=True)
class EntitySet:
    """
    Entities keyed by category.

    Every category is always present; each holds a tuple in discovery order.
    Duplicates are kept.
    """
    conditions: Tuple[Entity, ...] = ()
    medications: Tuple[Entity, ...] = ()
    procedures: Tuple[Entity, ...] = ()
    dates: Tuple[Entity, ...] = ()
    providers: Tuple[Entity, ...] = ()
    measurements: Tuple[Entity, ...] = ()

    _FIELDS = {
        EntityCategory.CONDITION: 'conditions',
        EntityCategory.MEDICATION: 'medications',
        EntityCategory.PROCEDURE: 'procedures',
        EntityCategory.DATE: 'dates',
        EntityCategory.PROVIDER: 'providers',
        EntityCategory.MEASUREMENT: 'measurements',
    }

    @classmethod
    def from_entities(cls, entities: Sequence[Entity]) -> "EntitySet":
        """Group a flat sequence into an EntitySet, preserving order."""
        grouped: Dict[str, List[Entity]] = {name: [] for name in cls._FIELDS.values()}
        for entity in entities:
            grouped[cls._FIELDS[entity.category]].append(entity)
        return cls(**{name: tuple(items) for name, items in grouped.items()})

    def by_category(self, category: EntityCategory) -> Tuple[Entity, ...]:
        return getattr(self, self._FIELDS[category])

    def texts(self, category: EntityCategory) -> List[str]:
        return [entity.text for entity in self.by_category(category)]

    def count(self, category: EntityCategory = None) -> int:
        if category is not None:
            return len(self.by_category(category))
        return sum(len(self.by_category(c)) for c in EntityCategory)

    def __iter__(self) -> Iterator[Entity]:
        for category in EntityCategory:
            yield from self.by_category(category)

    def __len__(self) -> int:
        return self.count()

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            name: [entity.to_dict() for entity in getattr(self, name)]
            for name in self._FIELDS.values()
        }


@dataclass(frozen=True)
class DocumentAnalysis:
    """Result of one DocumentAnalysisPipeline run."""
    category: str
    tags: FrozenSet[str]
    extracted_text: str
    confidence: float
    entities: EntitySet

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category,
            'tags': sorted(self.tags),
            'extractedText': self.extracted_text,
            'confidence': self.confidence,
            'entities': self.entities.to_dict()
        }


@dataclass(frozen=True)
class MedicalInsightReport:
    """Validated insight report produced by ResilientInsightParser."""
    summary: str
    key_findings: Tuple[str, ...]
    recommendations: Tuple[str, ...]
    medical_terms: Tuple[str, ...] = ()
    metrics: Tuple[str, ...] = ()
    urgent_items: Tuple[str, ...] = ()
    confidence: float = 0.85
    category: str = "General Medical Document"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'summary': self.summary,
            'keyFindings': list(self.key_findings),
            'recommendations': list(self.recommendations),
            'medicalTerms': list(self.medical_terms),
            'metrics': list(self.metrics),
            'urgentItems': list(self.urgent_items),
            'confidence': self.confidence,
            'category': self.category
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MedicalInsightReport":
        """Rebuild a report from its wire form (no validation)."""
        return cls(
            summary=data['summary'],
            key_findings=tuple(data.get('keyFindings', ())),
            recommendations=tuple(data.get('recommendations', ())),
            medical_terms=tuple(data.get('medicalTerms', ())),
            metrics=tuple(data.get('metrics', ())),
            urgent_items=tuple(data.get('urgentItems', ())),
            confidence=float(data.get('confidence', 0.85)),
            category=data.get('category', "General Medical Document")
        )
