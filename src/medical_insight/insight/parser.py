# ============================================================================
# src/medical_insight/insight/parser.py
# ============================================================================
"""
Resilient Insight Parser

Turns whatever the external service returned into a MedicalInsightReport
that always satisfies the report invariants.

Stages:
1. extract_json_object(): first '{' through its matching '}' (string-aware
   brace matching), parsed directly, repaired with json_repair if needed
2. free_text_report(): heuristic mining when no JSON object is found
   - mine_recommendations(): fixed, ordered pattern families
   - mine_medical_terms(): clinical nouns, BP ratios, dosage numbers
   - mine_metrics(), mine_urgent_items()
3. service_failed_report(): deterministic canned candidate
4. validate(): normalization pass over any candidate
   - every list field present, strings only
   - keyFindings >= 1, recommendations >= MIN_RECOMMENDATIONS
   - confidence finite in [0, 1]
   - category present
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple
import json
import logging
import math
import re

from json_repair import repair_json

from ..constants.vocabulary import MedicalVocabulary, load_vocabulary
from ..core.models import MedicalInsightReport


class InsightState(str, Enum):
    """States of the insight request state machine."""
    REQUESTING = "requesting"
    PARSED_JSON = "parsed_json"
    PARSED_FROM_FREE_TEXT = "parsed_from_free_text"
    SERVICE_FAILED = "service_failed"
    VALIDATED = "validated"


DEFAULT_RECOMMENDATIONS: Tuple[str, ...] = (
    "Review these results thoroughly with your healthcare provider during your next appointment",
    "Keep this document easily accessible for all future medical visits and consultations",
    "Ask your doctor to explain any medical terminology or values that are unclear to you",
    "Monitor any symptoms or conditions mentioned and report changes to your healthcare team",
    "Ensure all your healthcare providers have copies of these important medical results",
    "Follow up on any recommended tests, treatments, or lifestyle modifications mentioned",
)

DEFAULT_KEY_FINDINGS: Tuple[str, ...] = (
    "Medical document reviewed; no specific findings were highlighted",
)

FALLBACK_CATEGORY = "Medical Document"

# Legacy response field names -> report field names
FIELD_ALIASES = {
    "medicalFindings": "keyFindings",
    "keyMetrics": "metrics",
    "analysisType": "category",
}

LIST_FIELDS = ("keyFindings", "recommendations", "medicalTerms", "metrics", "urgentItems")

# Recommendation pattern families, tried in this order
RECOMMENDATION_PATTERNS: Tuple[Tuple[str, Pattern], ...] = (
    ("recommend", re.compile(r"\brecommend(?:s|ed|ation|ations)?\b", re.IGNORECASE)),
    ("should", re.compile(r"\bshould\b", re.IGNORECASE)),
    ("consider", re.compile(r"\bconsider(?:s|ed|ing)?\b", re.IGNORECASE)),
    ("follow-up", re.compile(r"\bfollow[\s-]?up\b", re.IGNORECASE)),
)

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+|\n+")
LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")
MIN_CLAUSE_LENGTH = 8

BLOOD_PRESSURE_RATIO = re.compile(r"\b\d{2,3}/\d{2,3}(?:\s*mmHg)?", re.IGNORECASE)
DOSAGE_NUMBER = re.compile(r"\b\d+(?:\.\d+)?\s*(?:mg|mcg|ml|iu|units?)\b", re.IGNORECASE)
METRIC_PATTERN = re.compile(
    r"\d+\.?\d*\s*(?:mg/dl|mmhg|bpm|°f|°c|kg|lbs|cm|%|mg|ml|units)",
    re.IGNORECASE
)


def find_json_object(text: str) -> Optional[str]:
    """
    Return the substring from the first '{' through its matching '}'.

    Braces inside JSON strings are ignored. If the object is never closed,
    the remainder of the text is returned for repair.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return text[start:]


def _dedupe(items: Sequence[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


class ResilientInsightParser:
    """
    Parses and validates external insight responses.
    """

    def __init__(
        self,
        settings=None,
        vocabulary: Optional[MedicalVocabulary] = None,
        default_recommendations: Sequence[str] = DEFAULT_RECOMMENDATIONS
    ):
        if settings is None:
            from ..config import insight_settings
            settings = insight_settings

        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.vocabulary = vocabulary or load_vocabulary()
        self.default_recommendations = tuple(default_recommendations)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------
    def parse(self, raw_text: Optional[str], filename: str) -> Tuple[Dict[str, Any], InsightState]:
        """
        Build a candidate report from a raw response.

        Returns:
            (candidate dict, PARSED_JSON or PARSED_FROM_FREE_TEXT)
        """
        raw_text = raw_text or ""
        obj = self.extract_json_object(raw_text)

        if obj is not None:
            self.logger.debug(f"Parsed JSON insight response for {filename}")
            return obj, InsightState.PARSED_JSON

        self.logger.info(f"No JSON object in insight response for {filename}, mining free text")
        return self.free_text_report(raw_text, filename), InsightState.PARSED_FROM_FREE_TEXT

    def extract_json_object(self, text: str) -> Optional[Dict[str, Any]]:
        """
        Extract the first JSON object embedded in text.

        Tries, in order: direct parse of the brace-matched block, then
        json_repair on that block (single quotes, trailing commas,
        truncation).
        """
        if not text or not text.strip():
            return None

        block = find_json_object(text)
        if block is None:
            return None

        try:
            parsed = json.loads(block)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        try:
            repaired = repair_json(block, return_objects=True)
        except Exception as e:
            self.logger.debug(f"json_repair failed on extracted block: {e}")
            return None

        if isinstance(repaired, dict) and repaired:
            self.logger.debug("json_repair fixed extracted JSON block")
            return repaired

        return None

    # ------------------------------------------------------------------
    # Free-text mining
    # ------------------------------------------------------------------
    def mine_recommendations(self, text: str, limit: Optional[int] = None) -> List[str]:
        """
        Recommendation-like sentences, family by family in fixed order.

        A sentence is taken once, by the first family that matches it.
        """
        if limit is None:
            limit = self.settings.MAX_MINED_RECOMMENDATIONS

        sentences = []
        for sentence in SENTENCE_SPLIT.split(text or ""):
            sentence = LIST_MARKER.sub("", sentence).strip().rstrip(".!?").strip()
            if len(sentence) >= MIN_CLAUSE_LENGTH:
                sentences.append(sentence)

        found: List[str] = []
        taken = set()
        for _family, pattern in RECOMMENDATION_PATTERNS:
            for index, sentence in enumerate(sentences):
                if index in taken or not pattern.search(sentence):
                    continue
                clause = sentence[0].upper() + sentence[1:]
                if clause.lower() in (f.lower() for f in found):
                    taken.add(index)
                    continue
                found.append(clause)
                taken.add(index)
                if len(found) >= limit:
                    return found

        return found

    def mine_medical_terms(self, text: str) -> List[str]:
        lowered = (text or "").lower()
        terms = [term for term in self.vocabulary.clinical_terms if term.lower() in lowered]
        terms.extend(match.group(0).strip() for match in BLOOD_PRESSURE_RATIO.finditer(text or ""))
        terms.extend(match.group(0).strip() for match in DOSAGE_NUMBER.finditer(text or ""))
        return _dedupe(terms)

    def mine_metrics(self, text: str) -> List[str]:
        return [match.group(0).strip() for match in METRIC_PATTERN.finditer(text or "")]

    def mine_urgent_items(self, text: str) -> List[str]:
        keywords = self.vocabulary.urgent_keywords
        lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
        urgent = [line for line in lines if any(k in line.lower() for k in keywords)]
        return urgent[:self.settings.MAX_URGENT_ITEMS]

    def determine_category(self, filename: str, text: str) -> str:
        name = (filename or "").lower()
        content = (text or "").lower()

        if "lab" in name or "lab" in content or "blood test" in content:
            return "Laboratory Results"
        if "prescription" in name or "medication" in content or "rx" in content:
            return "Prescription Document"
        if "xray" in name or "x-ray" in name or "imaging" in content:
            return "Medical Imaging Report"
        if "visit" in content or "appointment" in content:
            return "Medical Visit Notes"
        return FALLBACK_CATEGORY

    def free_text_report(self, text: str, filename: str) -> Dict[str, Any]:
        """Candidate report mined from a response with no JSON object."""
        lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
        excerpt = " ".join(lines[:3])[:200]
        summary = f"Detailed analysis of {filename}."
        if excerpt:
            summary = f"{summary} {excerpt}"

        recommendations = self.mine_recommendations(text)
        if not recommendations:
            recommendations = list(self.default_recommendations)

        medical_terms = self.mine_medical_terms(text)

        return {
            "summary": summary,
            "keyFindings": list(medical_terms),
            "recommendations": recommendations,
            "medicalTerms": medical_terms,
            "metrics": self.mine_metrics(text),
            "urgentItems": self.mine_urgent_items(text),
            "confidence": self.settings.DEGRADED_INSIGHT_CONFIDENCE,
            "category": self.determine_category(filename, text),
        }

    def service_failed_report(self, filename: str) -> Dict[str, Any]:
        """Deterministic candidate used when the service call itself failed."""
        return {
            "summary": (
                f"{filename} has been received and added to your medical records. "
                "Review it with your healthcare provider for a detailed interpretation."
            ),
            "keyFindings": ["Medical document received and stored for review"],
            "recommendations": list(self.default_recommendations),
            "medicalTerms": [],
            "metrics": [],
            "urgentItems": [],
            "confidence": self.settings.DEGRADED_INSIGHT_CONFIDENCE,
            "category": FALLBACK_CATEGORY,
        }

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self, candidate: Optional[Mapping[str, Any]], filename: str) -> MedicalInsightReport:
        """
        Normalize any candidate into a report that satisfies the invariants.
        """
        data = self._apply_aliases(candidate if isinstance(candidate, Mapping) else {})

        summary = data.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            summary = (
                f"Comprehensive medical analysis of {filename} has been completed "
                "with detailed findings and recommendations."
            )

        lists = {name: self._string_list(data.get(name)) for name in LIST_FIELDS}

        key_findings = lists["keyFindings"] or list(DEFAULT_KEY_FINDINGS)
        recommendations = self._ensure_recommendations(lists["recommendations"])

        category = data.get("category")
        if not isinstance(category, str) or not category.strip():
            category = self.settings.DEFAULT_INSIGHT_CATEGORY

        return MedicalInsightReport(
            summary=summary.strip(),
            key_findings=tuple(key_findings),
            recommendations=tuple(recommendations),
            medical_terms=tuple(lists["medicalTerms"]),
            metrics=tuple(lists["metrics"]),
            urgent_items=tuple(lists["urgentItems"]),
            confidence=self._coerce_confidence(data.get("confidence")),
            category=category.strip()
        )

    def _apply_aliases(self, candidate: Mapping[str, Any]) -> Dict[str, Any]:
        data = dict(candidate)
        for alias, name in FIELD_ALIASES.items():
            if alias in data and not data.get(name):
                data[name] = data.pop(alias)
        return data

    @staticmethod
    def _string_list(value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value.strip()] if value.strip() else []
        if isinstance(value, (list, tuple)):
            items = []
            for item in value:
                if isinstance(item, dict):
                    # {"finding": "...", "value": "..."} -> "... - ..."
                    item = " - ".join(str(v).strip() for v in item.values() if v not in (None, ""))
                elif item is None or isinstance(item, list):
                    continue
                text = str(item).strip()
                if text:
                    items.append(text)
            return items
        return []

    def _ensure_recommendations(self, recommendations: List[str]) -> List[str]:
        if not recommendations:
            return list(self.default_recommendations)

        minimum = self.settings.MIN_RECOMMENDATIONS
        padded = list(recommendations)
        present = {r.lower() for r in padded}
        for default in self.default_recommendations:
            if len(padded) >= minimum:
                break
            if default.lower() not in present:
                padded.append(default)
                present.add(default.lower())
        return padded

    def _coerce_confidence(self, value: Any) -> float:
        default = self.settings.DEFAULT_INSIGHT_CONFIDENCE

        if isinstance(value, bool) or value is None:
            return default
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return default
        if not isinstance(value, (int, float)):
            return default

        value = float(value)
        if not math.isfinite(value) or value < 0.0 or value > 1.0:
            return default
        return value
