"""OpenAI-based model client.

Uses the OpenAI chat completions API for text and vision prompts. Works with
any OpenAI-compatible endpoint when APP_OPENAI_BASE_URL is set.

Includes retry logic with exponential backoff for transient API errors.
"""

import base64
import os
from typing import Any

from openai import OpenAI
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from invoice_processor.llm.base import ModelClient
from invoice_processor.shared.config import Settings


class OpenAIModelClient(ModelClient):
    """Model client for the OpenAI chat completions API.

    Requires OPENAI_API_KEY environment variable.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize OpenAI model client.

        Args:
            settings: Application settings
        """
        super().__init__(settings)
        self._client: OpenAI | None = None

    @property
    def client_name(self) -> str:
        """Get client name for logging/metrics.

        Returns:
            Client identifier 'openai'
        """
        return "openai"

    def is_available(self) -> bool:
        """Check if OpenAI API key is configured.

        Returns:
            True if OPENAI_API_KEY environment variable is set
        """
        return os.getenv("OPENAI_API_KEY") is not None

    def chat_text(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        timeout: float | None = None,
    ) -> str:
        """Send a text prompt to OpenAI.

        Args:
            model: Model identifier
            system_prompt: System instructions
            user_prompt: User message
            timeout: Optional per-call deadline in seconds

        Returns:
            Content of the first choice

        Raises:
            RuntimeError: If OPENAI_API_KEY is not set
            openai.OpenAIError: After all retry attempts are exhausted
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return self._complete(model, messages, timeout)

    def chat_with_image(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        image_data: bytes,
        mime_type: str,
        timeout: float | None = None,
    ) -> str:
        """Send a prompt with an inline base64 image to OpenAI.

        Args:
            model: Vision-capable model identifier
            system_prompt: System instructions
            user_prompt: User message
            image_data: Encoded image bytes
            mime_type: Image MIME type
            timeout: Optional per-call deadline in seconds

        Returns:
            Content of the first choice
        """
        encoded = base64.b64encode(image_data).decode("ascii")
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": user_prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                    },
                ],
            },
        ]
        return self._complete(model, messages, timeout)

    def _complete(self, model: str, messages: list[dict[str, Any]], timeout: float | None) -> str:
        """Run a chat completion and return the answer text."""
        api_key = os.getenv("OPENAI_API_KEY")
        if api_key is None:
            raise RuntimeError("OPENAI_API_KEY environment variable not set")

        # Initialize client if not already done
        if self._client is None or self._client.api_key != api_key:
            self._client = OpenAI(api_key=api_key, base_url=self.settings.openai_base_url)

        response = self._call_openai_with_retry(
            model, messages, timeout or self.settings.model_timeout_seconds
        )
        content = response.choices[0].message.content
        if not content:
            raise RuntimeError("Empty response content from OpenAI")
        result: str = content
        return result

    @retry(
        retry=retry_if_exception_type((Exception,)),  # Retry on transient errors
        wait=wait_exponential_jitter(initial=1, max=60),  # Exponential backoff with jitter
        stop=stop_after_attempt(3),  # Max 3 attempts
        reraise=True,  # Re-raise exception after max attempts
    )
    def _call_openai_with_retry(
        self, model: str, messages: list[dict[str, Any]], timeout: float
    ) -> Any:
        """Call OpenAI API with retry logic for transient errors.

        Uses exponential backoff with jitter to handle rate limits and temporary failures.

        Args:
            model: Model identifier
            messages: Chat messages
            timeout: Request timeout in seconds

        Returns:
            OpenAI API response

        Raises:
            Exception: After all retry attempts are exhausted
        """
        if self._client is None:
            raise RuntimeError("OpenAI client not initialized")

        return self._client.chat.completions.create(  # type: ignore[call-overload]
            model=model,
            messages=messages,
            temperature=0,  # Deterministic output
            timeout=timeout,
        )
