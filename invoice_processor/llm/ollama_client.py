"""Ollama-based model client for self-hosted LLM inference.

Uses a local Ollama server for text and vision prompts.
Supports data sovereignty requirements by running entirely on-premises.

Requires Ollama server running on localhost:11434 (configurable).
See: https://ollama.ai/
"""

import base64
import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from invoice_processor.llm.base import ModelClient
from invoice_processor.shared.config import Settings

logger = logging.getLogger(__name__)


class OllamaModelClient(ModelClient):
    """Model client for the Ollama generate API.

    Vision prompts require a multimodal model (e.g. llava, qwen2.5vl).
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Ollama model client.

        Args:
            settings: Application settings
        """
        super().__init__(settings)
        self._base_url = settings.ollama_base_url
        self._client = httpx.Client(timeout=settings.model_timeout_seconds)

    @property
    def client_name(self) -> str:
        """Get client name for logging/metrics.

        Returns:
            Client identifier 'ollama'
        """
        return "ollama"

    def is_available(self) -> bool:
        """Check if Ollama server is running and the text model is pulled.

        Returns:
            True if Ollama server responds and model is loaded
        """
        try:
            response = self._client.get(f"{self._base_url}/api/tags")
            if response.status_code != 200:
                return False
            models = response.json().get("models", [])
            model_names = [m.get("name", "").split(":")[0] for m in models]
            return self.settings.text_model.split(":")[0] in model_names
        except Exception:
            return False

    def chat_text(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        timeout: float | None = None,
    ) -> str:
        """Send a text prompt to Ollama.

        Args:
            model: Ollama model tag
            system_prompt: System instructions
            user_prompt: User message
            timeout: Optional per-call deadline in seconds

        Returns:
            Raw response text
        """
        payload = {
            "model": model,
            "system": system_prompt,
            "prompt": user_prompt,
            "stream": False,
            "options": {"temperature": 0},
        }
        return self._call_ollama_with_retry(payload, timeout)

    def chat_with_image(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        image_data: bytes,
        mime_type: str,
        timeout: float | None = None,
    ) -> str:
        """Send a prompt with one base64 image to Ollama.

        Ollama sniffs the image format itself, so mime_type is only logged.

        Args:
            model: Multimodal Ollama model tag
            system_prompt: System instructions
            user_prompt: User message
            image_data: Encoded image bytes
            mime_type: Image MIME type
            timeout: Optional per-call deadline in seconds

        Returns:
            Raw response text
        """
        logger.debug(f"Sending {mime_type} image ({len(image_data)} bytes) to {model}")
        payload = {
            "model": model,
            "system": system_prompt,
            "prompt": user_prompt,
            "images": [base64.b64encode(image_data).decode("ascii")],
            "stream": False,
            "options": {"temperature": 0},
        }
        return self._call_ollama_with_retry(payload, timeout)

    @retry(
        retry=retry_if_exception_type((httpx.HTTPError, httpx.TimeoutException)),
        wait=wait_exponential_jitter(initial=1, max=30),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _call_ollama_with_retry(self, payload: dict[str, Any], timeout: float | None) -> str:
        """Call Ollama API with retry logic for transient errors.

        Args:
            payload: Request body for /api/generate
            timeout: Optional per-call deadline in seconds

        Returns:
            Raw response text from Ollama

        Raises:
            httpx.HTTPError: After all retry attempts exhausted
        """
        response = self._client.post(
            f"{self._base_url}/api/generate",
            json=payload,
            timeout=timeout or self.settings.model_timeout_seconds,
        )
        response.raise_for_status()
        result: str = response.json().get("response", "")
        return result
