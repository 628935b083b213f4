# ============================================================================
# src/medical_insight/constants/document_categories.py
# ============================================================================
"""
Document Categories
- The closed set of labels DocumentClassifier may assign
"""

from enum import Enum


class DocumentCategory(str, Enum):
    """
    Single classification label for an analyzed document.
    Values are the user-facing labels.
    """
    PRESCRIPTIONS = "Prescriptions"
    LAB_RESULTS = "Lab Results"
    IMAGING = "Imaging"
    VISIT_NOTES = "Visit Notes"
    VACCINATIONS = "Vaccinations"
    PROCEDURES = "Procedures"
    INSURANCE = "Insurance"
    GENERAL = "General"


CATEGORY_LABELS = frozenset(category.value for category in DocumentCategory)
