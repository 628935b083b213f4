# ============================================================================
# src/medical_insight/insight/client.py
# ============================================================================
"""
Insight Client Factory

Usage:
    from medical_insight.insight.client import create_client

    client = create_client()                       # backend from INSIGHT_BACKEND
    client = create_client({'backend': 'ollama'})  # explicit backend
    raw = await client.request(data_url, "labs.png")
"""

from typing import Any, Dict, Optional
import logging

from .base import BaseInsightClient
from .ollama_client import OllamaInsightClient
from .openai_client import OpenAIInsightClient
from ..config import get_config
from ..utils.exceptions import ConfigurationError

DEFAULT_BACKEND = "openai"

# Keyed by backend + connection-defining params so HTTP sessions are reused
_client_cache: Dict[tuple, BaseInsightClient] = {}

_logger = logging.getLogger(__name__)


def create_client(config: Optional[Dict[str, Any]] = None) -> BaseInsightClient:
    """
    Create (or reuse) an insight client.

    Settings from the environment/.env are merged with `config`; passed
    values take precedence.

    Args:
        config: Optional overrides:
            - backend: "openai" | "ollama"
            - api_key, model, base_url (openai)
            - ollama_host, ollama_model (ollama)
            - max_tokens, temperature, timeout

    Raises:
        ConfigurationError: unknown backend
    """
    config = {**get_config(), **(config or {})}
    backend = (config.get('backend') or DEFAULT_BACKEND).lower()

    if backend == "openai":
        cache_key = (backend, config.get('model'), config.get('base_url'), config.get('api_key'))
    elif backend == "ollama":
        cache_key = (backend, config.get('ollama_host'), config.get('ollama_model'))
    else:
        raise ConfigurationError(
            f"Unknown insight backend: {backend}. Supported backends: openai, ollama"
        )

    if cache_key in _client_cache:
        _logger.debug(f"Reusing cached {backend} insight client")
        return _client_cache[cache_key]

    if backend == "openai":
        client = OpenAIInsightClient(config)
    else:
        client = OllamaInsightClient(config)

    _client_cache[cache_key] = client
    _logger.info(f"Created {backend} insight client ({client.model_name})")
    return client


def clear_client_cache() -> None:
    _client_cache.clear()
