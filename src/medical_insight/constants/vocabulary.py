# ============================================================================
# src/medical_insight/constants/vocabulary.py
# ============================================================================
"""
Medical Vocabulary Table

Condition, medication and procedure word lists plus the keyword maps used
for tagging are data, loaded from knowledge/vocabularies.json (or the file
named by VOCABULARY_PATH). Tables are immutable and versioned; extend()
returns a new table instead of mutating the loaded one.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_VOCABULARY_PATH = Path(__file__).parent.parent / "knowledge" / "vocabularies.json"

_REQUIRED_KEYS = ("conditions", "medications", "procedures", "measurement_units")


@dataclass(frozen=True)
class MedicalVocabulary:
    """Read-only vocabulary table shared by extraction and classification."""
    version: int
    conditions: Tuple[str, ...]
    medications: Tuple[str, ...]
    procedures: Tuple[str, ...]
    measurement_units: Tuple[str, ...]
    provider_credentials: Tuple[str, ...] = ()
    imaging_procedure_terms: Tuple[str, ...] = ()
    condition_tags: Tuple[Tuple[str, str], ...] = ()
    procedure_tags: Tuple[Tuple[str, str], ...] = ()
    text_tag_patterns: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    clinical_terms: Tuple[str, ...] = ()
    urgent_keywords: Tuple[str, ...] = ()
    source: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: Optional[str] = None) -> "MedicalVocabulary":
        missing = [key for key in _REQUIRED_KEYS if key not in data]
        if missing:
            raise ConfigurationError(f"Vocabulary is missing required keys: {missing}")

        try:
            return cls(
                version=int(data.get("version", 1)),
                conditions=_terms(data["conditions"]),
                medications=_terms(data["medications"]),
                procedures=_terms(data["procedures"]),
                measurement_units=tuple(data["measurement_units"]),
                provider_credentials=tuple(data.get("provider_credentials", ())),
                imaging_procedure_terms=_terms(data.get("imaging_procedure_terms", ())),
                condition_tags=tuple((k.lower(), v) for k, v in data.get("condition_tags", {}).items()),
                procedure_tags=tuple((k.lower(), v) for k, v in data.get("procedure_tags", {}).items()),
                text_tag_patterns=tuple(
                    (tag, tuple(patterns))
                    for tag, patterns in data.get("text_tag_patterns", {}).items()
                ),
                clinical_terms=tuple(data.get("clinical_terms", ())),
                urgent_keywords=_terms(data.get("urgent_keywords", ())),
                source=source
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid vocabulary data: {e}") from e

    def extend(
        self,
        conditions: Iterable[str] = (),
        medications: Iterable[str] = (),
        procedures: Iterable[str] = ()
    ) -> "MedicalVocabulary":
        """Return a new table with extra terms appended and the version bumped."""
        return replace(
            self,
            version=self.version + 1,
            conditions=_merge(self.conditions, conditions),
            medications=_merge(self.medications, medications),
            procedures=_merge(self.procedures, procedures)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "conditions": list(self.conditions),
            "medications": list(self.medications),
            "procedures": list(self.procedures),
            "measurement_units": list(self.measurement_units),
            "provider_credentials": list(self.provider_credentials),
            "imaging_procedure_terms": list(self.imaging_procedure_terms),
            "condition_tags": dict(self.condition_tags),
            "procedure_tags": dict(self.procedure_tags),
            "text_tag_patterns": {tag: list(p) for tag, p in self.text_tag_patterns},
            "clinical_terms": list(self.clinical_terms),
            "urgent_keywords": list(self.urgent_keywords),
        }


def _terms(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(str(value).strip().lower() for value in values if str(value).strip())


def _merge(existing: Tuple[str, ...], additions: Iterable[str]) -> Tuple[str, ...]:
    merged = list(existing)
    for term in _terms(additions):
        if term not in merged:
            merged.append(term)
    return tuple(merged)


@lru_cache(maxsize=8)
def load_vocabulary(path: Optional[Path] = None) -> MedicalVocabulary:
    """
    Load a vocabulary table from JSON.

    Args:
        path: JSON file; VOCABULARY_PATH setting or the packaged table when None

    Raises:
        ConfigurationError: file missing, unreadable or malformed
    """
    if path is None:
        from ..config import base_settings
        path = base_settings.VOCABULARY_PATH or DEFAULT_VOCABULARY_PATH

    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not load vocabulary from {path}: {e}") from e

    vocabulary = MedicalVocabulary.from_dict(data, source=str(path))
    logger.debug(
        f"Loaded vocabulary v{vocabulary.version} from {path}: "
        f"{len(vocabulary.conditions)} conditions, {len(vocabulary.medications)} medications, "
        f"{len(vocabulary.procedures)} procedures"
    )
    return vocabulary
