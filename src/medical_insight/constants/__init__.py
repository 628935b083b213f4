# ============================================================================
# src/medical_insight/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .document_categories import DocumentCategory, CATEGORY_LABELS
from .vocabulary import MedicalVocabulary, load_vocabulary, DEFAULT_VOCABULARY_PATH
