"""Shared configuration management for the invoice processor.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/

Every component receives the same Settings instance once, at construction.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_TEXT_MODEL=gpt-4o
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-processor",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Model-call configuration
    model_provider: Literal["openai", "ollama"] = Field(
        default="openai",
        description="Model client: openai (OpenAI-compatible API), ollama (self-hosted LLM)",
    )
    text_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for text and OCR-correction extraction",
    )
    vision_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for image (vision) extraction",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints (e.g. OpenRouter)",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server base URL",
    )
    model_timeout_seconds: float = Field(
        default=120.0,
        description="Default timeout for a single model call",
        gt=0,
    )

    # PDF rasterization
    pdf_render_dpi: int = Field(
        default=100,
        description="Resolution used when rendering PDF pages for vision extraction",
        gt=0,
    )
    pdf_render_quality: int = Field(
        default=80,
        description="JPEG quality used when rendering PDF pages",
        ge=1,
        le=100,
    )
    pdf_render_primary_tool: str = Field(
        default="pdftoppm",
        description="First-choice rasterizer executable (poppler)",
    )
    pdf_render_fallback_tool: str = Field(
        default="convert",
        description="Fallback rasterizer executable (ImageMagick)",
    )

    # Extraction behaviour
    recalculate_totals: bool = Field(
        default=False,
        description="Re-derive line item and invoice totals from quantities and rates",
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted upload size for the HTTP API",
        gt=0,
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
