# ============================================================================
# src/medical_insight/config/thresholds_config.py
# ============================================================================
"""
Confidence Policy
- Per-entity bonus and aggregate cap
- Per-category entity confidences
- Classification thresholds
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ThresholdSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENTITY_CONFIDENCE_BONUS: float = Field(
        default=0.02,
        ge=0.0, le=1.0,
        description="Added to the OCR confidence for every matched entity"
    )
    MAX_AGGREGATE_CONFIDENCE: float = Field(
        default=0.98,
        ge=0.0, le=1.0,
        description="Cap on the aggregated confidence once entity bonuses apply"
    )
    LAB_MEASUREMENT_THRESHOLD: int = Field(
        default=2,
        ge=0,
        description="Lab Results needs strictly more measurements than this"
    )

    CONDITION_CONFIDENCE: float = Field(default=0.85, ge=0.0, le=1.0)
    MEDICATION_CONFIDENCE: float = Field(default=0.90, ge=0.0, le=1.0)
    PROCEDURE_CONFIDENCE: float = Field(default=0.88, ge=0.0, le=1.0)
    DATE_CONFIDENCE: float = Field(default=0.95, ge=0.0, le=1.0)
    PROVIDER_CONFIDENCE: float = Field(default=0.92, ge=0.0, le=1.0)
    MEASUREMENT_CONFIDENCE: float = Field(default=0.85, ge=0.0, le=1.0)


threshold_settings = ThresholdSettings()
