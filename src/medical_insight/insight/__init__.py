# ============================================================================
# src/medical_insight/insight/__init__.py
# ============================================================================
"""
External insight path: clients, parser and the request state machine.
"""

from .base import BaseInsightClient, BackendType
from .client import create_client, clear_client_cache
from .parser import InsightState, ResilientInsightParser, DEFAULT_RECOMMENDATIONS
from .service import InsightService, InsightOutcome
