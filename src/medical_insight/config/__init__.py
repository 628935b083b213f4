# ============================================================================
# src/medical_insight/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings.

get_config() flattens the settings into the dict that components accept
as their `config` argument.
"""

from typing import Any, Dict

from dotenv import load_dotenv

# Exported to os.environ so SDKs that read their own variables see .env values
load_dotenv()

from .base_config import base_settings, BaseSettingsConfig  # noqa: E402
from .extraction_config import extraction_settings, ExtractionSettings  # noqa: E402
from .thresholds_config import threshold_settings, ThresholdSettings  # noqa: E402
from .insight_config import insight_settings, InsightSettings  # noqa: E402
from .logging_config import logging_settings, LoggingSettings  # noqa: E402


def get_config() -> Dict[str, Any]:
    """Flat dict of insight-client settings, keyed the way clients read them."""
    return {
        'backend': insight_settings.INSIGHT_BACKEND,
        'api_key': insight_settings.OPENAI_API_KEY,
        'model': insight_settings.OPENAI_MODEL,
        'base_url': insight_settings.OPENAI_BASE_URL,
        'ollama_host': insight_settings.OLLAMA_HOST,
        'ollama_model': insight_settings.OLLAMA_MODEL,
        'max_tokens': insight_settings.INSIGHT_MAX_TOKENS,
        'temperature': insight_settings.INSIGHT_TEMPERATURE,
        'timeout': insight_settings.INSIGHT_TIMEOUT,
    }


__all__ = [
    'base_settings', 'BaseSettingsConfig',
    'extraction_settings', 'ExtractionSettings',
    'threshold_settings', 'ThresholdSettings',
    'insight_settings', 'InsightSettings',
    'logging_settings', 'LoggingSettings',
    'get_config',
]
