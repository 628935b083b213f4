# ============================================================================
# src/medical_insight/insight/openai_client.py
# ============================================================================
"""
OpenAI Insight Client

Sends the document (image URL / data URL, or extracted text) to an OpenAI
chat model with a JSON-only system prompt.

The openai SDK client is synchronous; calls run in the default executor
and are bounded by the configured timeout.
"""

from typing import Any, Dict, List, Optional
import asyncio

import openai
from openai import OpenAI

from .base import BaseInsightClient, BackendType, is_image_ref
from .prompts import SYSTEM_PROMPT, build_insight_prompt
from ..utils.exceptions import ServiceError

DEFAULT_OPENAI_MODEL = "gpt-4o"


class OpenAIInsightClient(BaseInsightClient):
    """
    OpenAI-backed insight client.

    Config options:
        api_key: OpenAI API key (required; missing key raises AuthError)
        model: Chat model (default: gpt-4o)
        base_url: Optional OpenAI-compatible endpoint
        max_tokens / temperature / timeout
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.api_key = self.config.get('api_key')
        self.base_url = self.config.get('base_url')
        self._model_name = self.config.get('model') or DEFAULT_OPENAI_MODEL
        self._client: Optional[OpenAI] = None

        if not self.api_key:
            self.logger.warning("OpenAI API key not configured. Set OPENAI_API_KEY.")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OPENAI

    @property
    def model_name(self) -> str:
        return self._model_name

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> OpenAI:
        """Lazy load the OpenAI SDK client."""
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0
            )
            self.logger.info(f"OpenAI client initialized: model={self._model_name}")
        return self._client

    def build_messages(
        self,
        document_ref: Optional[str],
        filename: str,
        document_text: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = [
            {"type": "text", "text": build_insight_prompt(filename, document_text)}
        ]
        if is_image_ref(document_ref):
            content.append({
                "type": "image_url",
                "image_url": {"url": document_ref, "detail": "high"}
            })

        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ]

    async def request(
        self,
        document_ref: Optional[str],
        filename: str,
        document_text: Optional[str] = None
    ) -> str:
        self.ensure_configured()
        messages = self.build_messages(document_ref, filename, document_text)

        def call_api():
            response = self.client.chat.completions.create(
                model=self._model_name,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
            return response.choices[0].message.content or ""

        loop = asyncio.get_running_loop()
        try:
            response_text = await asyncio.wait_for(
                loop.run_in_executor(None, call_api),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            self.logger.error(f"OpenAI request timed out after {self.timeout}s for {filename}")
            raise ServiceError(f"Insight request timed out after {self.timeout}s") from e
        except openai.APIStatusError as e:
            self.logger.error(f"OpenAI API error ({e.status_code}) for {filename}: {e.message}")
            raise ServiceError(f"OpenAI API error: {e.message}", status=e.status_code) from e
        except openai.OpenAIError as e:
            self.logger.error(f"OpenAI request failed for {filename}: {e}")
            raise ServiceError(f"OpenAI request failed: {e}") from e

        self.logger.info(f"OpenAI returned {len(response_text)} chars for {filename}")
        return response_text
