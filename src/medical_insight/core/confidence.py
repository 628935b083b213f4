# ============================================================================
# src/medical_insight/core/confidence.py
# ============================================================================
"""
Confidence Aggregation

Combines the extraction (OCR) confidence with entity yield:
- Base value is the extraction confidence
- Each matched entity adds a fixed bonus
- The bonus never pushes the score past the cap

Bonus, cap and the counted categories form a configurable policy.
"""

import math
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .models import EntityCategory, EntitySet


@dataclass(frozen=True)
class ConfidencePolicy:
    """Entity-yield bonus policy"""
    entity_bonus: float = 0.02
    cap: float = 0.98
    counted_categories: FrozenSet[EntityCategory] = field(
        default_factory=lambda: frozenset(EntityCategory)
    )

    @classmethod
    def from_settings(cls, settings=None) -> "ConfidencePolicy":
        if settings is None:
            from ..config import threshold_settings
            settings = threshold_settings
        return cls(
            entity_bonus=settings.ENTITY_CONFIDENCE_BONUS,
            cap=settings.MAX_AGGREGATE_CONFIDENCE
        )


def clamp_confidence(value: float) -> float:
    """Clamp to [0, 1]; NaN becomes 0."""
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


class ConfidenceAggregator:
    """
    Computes the overall DocumentAnalysis confidence.
    """

    def __init__(self, policy: Optional[ConfidencePolicy] = None):
        self.policy = policy or ConfidencePolicy.from_settings()

    def aggregate(self, ocr_confidence: float, entities: EntitySet) -> float:
        """
        Args:
            ocr_confidence: Confidence reported by the extraction strategy
            entities: Entities found in the extracted text

        Returns:
            Score in [0, 1]
        """
        base = clamp_confidence(ocr_confidence)

        matched = sum(entities.count(category) for category in self.policy.counted_categories)
        if matched == 0:
            return base

        boosted = min(base + matched * self.policy.entity_bonus, self.policy.cap)
        # A bonus never lowers a base score that already sits above the cap
        return clamp_confidence(max(base, boosted))
