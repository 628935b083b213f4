# ============================================================================
# src/medical_insight/extractors/__init__.py
# ============================================================================
"""
Text and entity extractors.
"""

from .text_extractor import TextExtractor, BaseTextExtractor, MimeFamily, classify_mime
from .fallback_extractor import FallbackTextExtractor
from .ocr_extractor import OCRExtractor, OCRResult
from .entity_extractor import EntityExtractor
