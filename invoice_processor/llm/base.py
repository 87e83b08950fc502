"""Abstract base class for model-call clients.

Enables switching between different model backends (OpenAI-compatible APIs,
self-hosted Ollama) while keeping one calling convention for the extractor.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod

from invoice_processor.shared.config import Settings


class ModelClient(ABC):
    """Abstract base class for language model clients.

    A client sends one prompt (optionally with one image) and returns the raw
    text of the model's answer. Clients raise on failure; interpreting the
    answer is the normalizer's job.

    Example implementations:
    - OpenAIModelClient: OpenAI chat completions API (cloud-based)
    - OllamaModelClient: Ollama generate API (self-hosted)
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize client with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @abstractmethod
    def chat_text(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        timeout: float | None = None,
    ) -> str:
        """Send a text-only prompt.

        Args:
            model: Model identifier
            system_prompt: System instructions
            user_prompt: User message
            timeout: Optional per-call deadline in seconds

        Returns:
            Raw response text
        """
        pass

    @abstractmethod
    def chat_with_image(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        image_data: bytes,
        mime_type: str,
        timeout: float | None = None,
    ) -> str:
        """Send a prompt together with one image.

        Args:
            model: Vision-capable model identifier
            system_prompt: System instructions
            user_prompt: User message
            image_data: Encoded image bytes
            mime_type: Image MIME type (e.g. image/jpeg)
            timeout: Optional per-call deadline in seconds

        Returns:
            Raw response text
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this client is configured and reachable.

        Returns:
            True if client can be used, False otherwise
        """
        pass

    @property
    @abstractmethod
    def client_name(self) -> str:
        """Get client name for logging/metrics.

        Returns:
            Client identifier (e.g., 'openai', 'ollama')
        """
        pass
