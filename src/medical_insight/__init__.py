# ============================================================================
# src/medical_insight/__init__.py
# ============================================================================
"""
Medical Insight Engine

Document intelligence for uploaded medical documents:
- Text extraction with primary/fallback strategies
- Rule-based entity extraction, categorization and tagging
- Resilient ingestion of external LLM insight reports
"""

__version__ = "0.1.0"
