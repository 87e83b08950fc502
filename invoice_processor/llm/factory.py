"""Factory for creating model clients based on configuration.

Implements Factory Pattern for client selection with registry pattern for extensibility.

Based on:
- Factory Pattern: https://refactoring.guru/design-patterns/factory-method/python
- Registry Pattern: Python Cookbook 3rd Edition, Recipe 9.22
"""

import logging

from invoice_processor.llm.base import ModelClient
from invoice_processor.llm.ollama_client import OllamaModelClient
from invoice_processor.llm.openai_client import OpenAIModelClient
from invoice_processor.shared.config import Settings

logger = logging.getLogger(__name__)


class ModelClientRegistry:
    """Registry of available model clients.

    Maintains a mapping of client names to their implementation classes.
    Supports runtime registration of new clients.
    """

    _clients: dict[str, type[ModelClient]] = {
        "openai": OpenAIModelClient,
        "ollama": OllamaModelClient,
    }

    @classmethod
    def register(cls, name: str, client_class: type[ModelClient]) -> None:
        """Register a new client.

        Args:
            name: Client identifier (must match Settings.model_provider)
            client_class: Class implementing ModelClient
        """
        cls._clients[name] = client_class
        logger.info(f"Registered model client: {name}")

    @classmethod
    def get_client_class(cls, name: str) -> type[ModelClient]:
        """Get client class by name.

        Args:
            name: Client identifier

        Returns:
            Client class implementing ModelClient

        Raises:
            ValueError: If client not found in registry
        """
        if name not in cls._clients:
            available = ", ".join(cls._clients.keys())
            raise ValueError(f"Unknown model client: '{name}'. Available clients: {available}")
        return cls._clients[name]

    @classmethod
    def list_clients(cls) -> list[str]:
        """List all registered client names.

        Returns:
            List of client names
        """
        return list(cls._clients.keys())


def create_model_client(settings: Settings) -> ModelClient:
    """Factory function to create a model client based on configuration.

    Logs a warning if the client is not available (e.g., missing API key).

    Args:
        settings: Application settings with model_provider field

    Returns:
        Configured model client instance

    Raises:
        ValueError: If configured client is unknown

    Example:
        >>> settings = Settings(model_provider="ollama")
        >>> client = create_model_client(settings)
        >>> text = client.chat_text("qwen2.5:7b", "system", "user")
    """
    client_name = settings.model_provider
    client_class = ModelClientRegistry.get_client_class(client_name)

    client = client_class(settings)

    if not client.is_available():
        logger.warning(
            f"Model client '{client_name}' is not fully available. "
            f"Check configuration (e.g., API keys, running server)."
        )

    logger.info(f"Created model client: {client_name}")
    return client
