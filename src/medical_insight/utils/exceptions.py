# ============================================================================
# src/medical_insight/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the medical insight engine.

Primary analysis path (text -> entities -> category) fails loudly:
ExtractionError / PipelineError abort the run.

Secondary insight path recovers locally from ServiceError; only AuthError
is ever surfaced to callers.
"""

from typing import Optional


class MedicalInsightError(Exception):
    """Base exception for all medical insight errors."""
    pass


class ExtractionError(MedicalInsightError):
    """A text extraction strategy failed on I/O or processing."""
    pass


class PipelineError(ExtractionError):
    """Both the primary and the fallback extraction strategies failed."""

    def __init__(
        self,
        message: str = "could not process this document",
        primary_error: Optional[BaseException] = None,
        fallback_error: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.primary_error = primary_error
        self.fallback_error = fallback_error


class AuthError(MedicalInsightError):
    """External insight service has no credential configured."""
    pass


class ServiceError(MedicalInsightError):
    """Transport, HTTP or SDK failure talking to the insight service."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class StoreError(MedicalInsightError):
    """Failure persisting or loading an analysis record."""
    pass


class ConfigurationError(MedicalInsightError):
    """Invalid configuration or vocabulary data."""
    pass
