# ============================================================================
# src/medical_insight/classifiers/__init__.py
# ============================================================================
"""
Document classification.
"""

from .document_classifier import DocumentClassifier, ClassificationRule
