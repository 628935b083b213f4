# ============================================================================
# src/medical_insight/insight/ollama_client.py
# ============================================================================
"""
Ollama Insight Client

Uses a local Ollama server (/api/generate). Image documents are sent as
base64 in the `images` field, so the model must be vision-capable
(e.g. llava). No credential is needed.

Setup:
    1. Install Ollama: https://ollama.ai
    2. Pull a model: ollama pull llava
    3. Start server: ollama serve
"""

from typing import Any, Dict, Optional
import asyncio

import aiohttp

from .base import BaseInsightClient, BackendType
from .prompts import SYSTEM_PROMPT, build_insight_prompt
from ..utils.exceptions import ServiceError

DEFAULT_OLLAMA_MODEL = "llava"


class OllamaInsightClient(BaseInsightClient):
    """
    Ollama-based insight client.

    Config options:
        ollama_host: Ollama server URL (default: http://localhost:11434)
        ollama_model: Model name (default: llava)
        max_tokens / temperature / timeout
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.host = (self.config.get('ollama_host') or 'http://localhost:11434').rstrip('/')
        self._model_name = self.config.get('ollama_model') or DEFAULT_OLLAMA_MODEL

        # HTTP session (created lazily, tied to event loop)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Initialized Ollama insight client: {self.host} / {self._model_name}")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return self._model_name

    def is_configured(self) -> bool:
        return bool(self.host)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for the current event loop."""
        current_loop = asyncio.get_running_loop()

        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is not current_loop
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                await self._session.close()

            timeout = aiohttp.ClientTimeout(total=None, sock_connect=30)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    def build_payload(
        self,
        document_ref: Optional[str],
        filename: str,
        document_text: Optional[str] = None
    ) -> Dict[str, Any]:
        prompt = build_insight_prompt(filename, document_text)

        payload: Dict[str, Any] = {
            "model": self._model_name,
            "system": SYSTEM_PROMPT,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
            }
        }

        if document_ref and document_ref.startswith("data:image/") and "," in document_ref:
            payload["images"] = [document_ref.split(",", 1)[1]]
        elif document_ref and document_ref.startswith(("http://", "https://")):
            # Ollama cannot fetch remote images
            payload["prompt"] = f"{prompt}\n\nDocument location: {document_ref}"

        return payload

    async def request(
        self,
        document_ref: Optional[str],
        filename: str,
        document_text: Optional[str] = None
    ) -> str:
        self.ensure_configured()
        payload = self.build_payload(document_ref, filename, document_text)

        async def _do_request():
            session = await self._get_session()
            async with session.post(f"{self.host}/api/generate", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ServiceError(
                        f"Ollama error ({response.status}): {error_text[:200]}",
                        status=response.status
                    )
                return await response.json()

        try:
            data = await asyncio.wait_for(_do_request(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            self.logger.error(f"Ollama request timed out after {self.timeout}s for {filename}")
            raise ServiceError(f"Insight request timed out after {self.timeout}s") from e
        except aiohttp.ClientConnectorError as e:
            raise ServiceError(
                f"Cannot connect to Ollama at {self.host}. Make sure Ollama is running: ollama serve"
            ) from e
        except aiohttp.ClientError as e:
            self.logger.error(f"Ollama request failed for {filename}: {e}")
            raise ServiceError(f"Ollama request failed: {e}") from e

        response_text = data.get('response', '') if isinstance(data, dict) else ''
        self.logger.info(
            f"Ollama returned {len(response_text)} chars for {filename} "
            f"({data.get('eval_count', 0) if isinstance(data, dict) else 0} tokens)"
        )
        return response_text
