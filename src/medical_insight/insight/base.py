# ============================================================================
# src/medical_insight/insight/base.py
# ============================================================================
"""
Base Insight Client Interface

Defines the interface all external insight backends implement.
Supported backends:
- openai: OpenAI chat completions (vision-capable, requires API key)
- ollama: Ollama server (local, no credential)

Clients only transport: they return the raw response text and never
interpret it. Interpretation lives in ResilientInsightParser.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional
import logging

from ..utils.exceptions import AuthError


class BackendType(Enum):
    """Supported insight backends."""
    OPENAI = "openai"
    OLLAMA = "ollama"


def is_image_ref(document_ref: Optional[str]) -> bool:
    """True for http(s) URLs and image data URLs."""
    if not document_ref:
        return False
    return document_ref.startswith(("http://", "https://", "data:image/"))


class BaseInsightClient(ABC):
    """
    Abstract base class for external insight clients.

    All backends must implement:
    - request(): one round trip, returns raw response text
    - is_configured(): whether a credential is available
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self.max_tokens = self.config.get('max_tokens', 3000)
        self.temperature = self.config.get('temperature', 0.2)
        self.timeout = self.config.get('timeout', 120)

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass

    def ensure_configured(self) -> None:
        """
        Raises:
            AuthError: no credential configured for this backend
        """
        if not self.is_configured():
            raise AuthError(f"{self.backend_type.value} insight service is not configured")

    @abstractmethod
    async def request(
        self,
        document_ref: Optional[str],
        filename: str,
        document_text: Optional[str] = None
    ) -> str:
        """
        Ask the service for an insight report.

        Args:
            document_ref: Image URL or data URL (may be None for text-only requests)
            filename: Original filename, included in the prompt
            document_text: Extracted text to send inline

        Returns:
            Raw response text (expected, not guaranteed, to contain JSON)

        Raises:
            AuthError: no credential configured
            ServiceError: any transport/HTTP/SDK failure or timeout
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None
