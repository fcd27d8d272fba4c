"""
Application configuration using pydantic-settings.

Loads and validates environment variables from .env file or system environment.
Only the HTTP layer reads settings directly; core services receive the values
they need through their constructors.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_PROTECTED_TERMS = [
    "OpenClaw",
    "ClawHub",
    "GitHub",
    "API",
    "CLI",
    "MCP",
    "JSON",
    "YAML",
    "Markdown",
    "SKILL.md",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =============================================================================
    # Translation Provider (OpenAI-compatible)
    # =============================================================================
    openai_api_key: str = Field(default="")
    openai_model: str = Field(default="gpt-4o-mini")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    openai_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    ai_provider: str = Field(default="openai", description="Registered provider name")

    # =============================================================================
    # API & Application
    # =============================================================================
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8080)
    auto_reload: bool = Field(default=False)
    debug: bool = Field(default=False)
    enable_swagger_ui: bool = Field(default=True)

    cors_origins: Annotated[list[str], NoDecode] = Field(default=["*"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # =============================================================================
    # Security
    # =============================================================================
    local_api_bearer: str = Field(
        default="",
        description="Bearer token required on protected endpoints (empty disables auth)",
    )

    # =============================================================================
    # Translator
    # =============================================================================
    translator_version: str = Field(default="1.0.0")
    source_language: str = Field(default="en")
    target_language: str = Field(default="zh-CN")
    protected_terms: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_PROTECTED_TERMS),
        description="Proper nouns that must pass through translation unchanged",
    )

    @field_validator("protected_terms", mode="before")
    @classmethod
    def parse_protected_terms(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated protected terms into a list."""
        if isinstance(v, str):
            return [term.strip() for term in v.split(",") if term.strip()]
        return v

    # =============================================================================
    # Performance & Resource Limits
    # =============================================================================
    max_concurrent_translations: int = Field(default=5, ge=1)
    translation_timeout_seconds: float = Field(default=600, gt=0, description="Per provider call")
    document_timeout_seconds: float = Field(default=1800, gt=0, description="Per document")
    max_tokens: int = Field(default=16000, ge=1)
    provider_max_retries: int = Field(default=3, ge=1, description="Attempts per provider call")
    provider_retry_base_delay: float = Field(default=2.0, ge=0)
    max_line_length: int = Field(default=5000, ge=1)
    max_chunk_chars: int = Field(default=6000, ge=1)
    batch_max_parallel_documents: int | None = Field(default=None, ge=1)

    # =============================================================================
    # Cache
    # =============================================================================
    cache_db_path: str = Field(default="./data/cache.db")
    cache_max_age_days: int = Field(default=30, ge=1)
    cache_cleanup_enabled: bool = Field(default=True)
    cache_cleanup_hour: int = Field(default=1, ge=0, le=23)

    # =============================================================================
    # Logging Configuration
    # =============================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")
    log_output: Literal["stdout", "file", "both"] = Field(default="stdout")
    log_file: str = Field(default="./logs/skill-translator.log")

    @model_validator(mode="after")
    def default_batch_parallelism(self) -> "Settings":
        """Batch parallelism falls back to the global concurrency cap."""
        if self.batch_max_parallel_documents is None:
            self.batch_max_parallel_documents = self.max_concurrent_translations
        return self

    @property
    def provider_configured(self) -> bool:
        return bool(self.openai_api_key) or self.ai_provider == "custom_openai"


# =============================================================================
# Helper Functions
# =============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get the process-wide settings instance.

    This function can be used as a FastAPI dependency.

    Returns:
        Settings: The cached settings instance
    """
    return Settings()
