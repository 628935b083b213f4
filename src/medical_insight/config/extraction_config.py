# ============================================================================
# src/medical_insight/config/extraction_config.py
# ============================================================================
"""
Text Extraction Settings
- Strategy confidences (primary and fallback)
- OCR language and PDF render scale
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PDF_CONFIDENCE: float = Field(
        default=0.92,
        ge=0.0, le=1.0,
        description="Confidence reported for PDF text-layer extraction"
    )
    IMAGE_CONFIDENCE: float = Field(
        default=0.78,
        ge=0.0, le=1.0,
        description="Confidence reported for image OCR (recognition noise)"
    )
    DOCUMENT_CONFIDENCE: float = Field(
        default=0.95,
        ge=0.0, le=1.0,
        description="Confidence reported for structured documents (Word, plain text)"
    )
    UNKNOWN_CONFIDENCE: float = Field(
        default=0.10,
        ge=0.0, le=1.0,
        description="Confidence reported for unsupported MIME types"
    )
    FALLBACK_CONFIDENCE: float = Field(
        default=0.82,
        ge=0.0, le=1.0,
        description="Confidence reported when the fallback extractor succeeds"
    )
    FALLBACK_DEGRADED_CONFIDENCE: float = Field(
        default=0.65,
        ge=0.0, le=1.0,
        description="Fallback confidence when the image could not be loaded"
    )
    FALLBACK_MINIMAL_CONFIDENCE: float = Field(
        default=0.50,
        ge=0.0, le=1.0,
        description="Fallback confidence for lenient raw decoding"
    )
    DEFAULT_LANGUAGE: str = Field(
        default="en",
        description="Language code reported on extraction results"
    )
    OCR_LANGUAGE: str = Field(
        default="eng",
        description="Tesseract language pack"
    )
    PDF_RENDER_SCALE: float = Field(
        default=2.0,
        gt=0.0,
        description="pypdfium2 render scale for OCR of scanned PDF pages"
    )
    UNKNOWN_TYPE_TEXT: str = Field(
        default="Unable to extract text from this file type.",
        description="Literal text returned for unsupported MIME types"
    )
    PENDING_TEXT: str = Field(
        default="Document uploaded - text extraction in progress",
        description="Placeholder text when an image cannot be loaded by the fallback"
    )


extraction_settings = ExtractionSettings()
