# ============================================================================
# src/medical_insight/utils/__init__.py
# ============================================================================
"""
Utility modules for the medical insight engine.
"""

from .exceptions import (
    MedicalInsightError,
    ExtractionError,
    PipelineError,
    AuthError,
    ServiceError,
    StoreError,
    ConfigurationError,
)

from .logging import (
    setup_logging,
    get_logger,
    log_performance,
    JsonFormatter,
)

__all__ = [
    # Exceptions
    'MedicalInsightError',
    'ExtractionError',
    'PipelineError',
    'AuthError',
    'ServiceError',
    'StoreError',
    'ConfigurationError',
    # Logging
    'setup_logging',
    'get_logger',
    'log_performance',
    'JsonFormatter',
]
