# ============================================================================
# src/medical_insight/config/insight_config.py
# ============================================================================
"""
External Insight Service Configuration
- Backend selection (OpenAI or local Ollama)
- Generation parameters
- Report validation defaults
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class InsightSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    INSIGHT_BACKEND: str = Field(
        default="openai",
        description="Insight backend: 'openai' or 'ollama'"
    )
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI backend. Missing key raises AuthError."
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o",
        description="Chat model used for document insight"
    )
    OPENAI_BASE_URL: Optional[str] = Field(
        default=None,
        description="Optional OpenAI-compatible endpoint"
    )
    OLLAMA_HOST: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )
    OLLAMA_MODEL: str = Field(
        default="llava",
        description="Ollama model (vision-capable for image documents)"
    )
    INSIGHT_MAX_TOKENS: int = Field(
        default=3000,
        gt=0,
        description="Maximum tokens for the insight response"
    )
    INSIGHT_TEMPERATURE: float = Field(
        default=0.2,
        ge=0.0, le=2.0,
        description="Sampling temperature for the insight response"
    )
    INSIGHT_TIMEOUT: int = Field(
        default=120,
        gt=0,
        description="Seconds before an insight request is abandoned"
    )

    MIN_RECOMMENDATIONS: int = Field(
        default=4,
        ge=1,
        description="Validated reports carry at least this many recommendations"
    )
    MAX_MINED_RECOMMENDATIONS: int = Field(
        default=6,
        ge=1,
        description="Cap on recommendation clauses mined from free text"
    )
    MAX_URGENT_ITEMS: int = Field(
        default=3,
        ge=0,
        description="Cap on urgent lines mined from free text"
    )
    DEFAULT_INSIGHT_CONFIDENCE: float = Field(
        default=0.85,
        ge=0.0, le=1.0,
        description="Confidence used when the response has none or an invalid one"
    )
    DEGRADED_INSIGHT_CONFIDENCE: float = Field(
        default=0.75,
        ge=0.0, le=1.0,
        description="Confidence of reports built without a parseable JSON response"
    )
    DEFAULT_INSIGHT_CATEGORY: str = Field(
        default="General Medical Document",
        description="Category used when the response has none"
    )


insight_settings = InsightSettings()
