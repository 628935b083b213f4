# ============================================================================
# src/medical_insight/core/__init__.py
# ============================================================================
"""
Core components for the medical insight engine.

DocumentAnalysisPipeline lives in core.document_pipeline and is imported
from there (it depends on the extractor and classifier packages).
"""

from .models import (
    RawDocument,
    ExtractionResult,
    Entity,
    EntityCategory,
    EntitySet,
    DocumentAnalysis,
    MedicalInsightReport,
)
from .confidence import ConfidenceAggregator, ConfidencePolicy
from .document_store import AnalysisStore, SQLiteAnalysisStore, InMemoryAnalysisStore
