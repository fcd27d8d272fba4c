"""
Provider registry.

Maps the ``AI_PROVIDER`` setting to a provider class.
"""

from skill_translator.core.exceptions import ProviderFailureError
from skill_translator.core.logging import get_logger
from skill_translator.services.ai_providers.base import BaseAIProvider, CompletionResult
from skill_translator.services.ai_providers.openai_provider import (
    CustomOpenAIProvider,
    OpenAIProvider,
)

logger = get_logger(__name__)


class AIProviderFactory:
    """Creates translation providers by registered name (case-insensitive)."""

    _providers: dict[str, type[BaseAIProvider]] = {
        "openai": OpenAIProvider,
        "custom_openai": CustomOpenAIProvider,
    }

    @classmethod
    def register_provider(cls, name: str, provider_class: type[BaseAIProvider]) -> None:
        cls._providers[name.lower()] = provider_class
        logger.info(f"Provider '{name}' registered")

    @classmethod
    def get_available_providers(cls) -> list[str]:
        return sorted(cls._providers)

    @classmethod
    def create_provider(
        cls,
        name: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 300,
        **kwargs,
    ) -> BaseAIProvider:
        """
        Instantiate the provider registered under ``name``.

        Raises:
            ValueError: Unknown name, or the provider rejects its configuration
                (e.g. a missing API key)
        """
        provider_class = cls._providers.get(name.lower())
        if provider_class is None:
            raise ValueError(
                f"Unknown AI provider: {name}. "
                f"Available providers: {', '.join(cls.get_available_providers())}"
            )

        try:
            provider = provider_class(api_key=api_key, base_url=base_url, timeout=timeout, **kwargs)
        except ValueError as e:
            logger.error(f"Provider '{name}' is misconfigured: {e}")
            raise

        logger.info(f"Using provider '{provider.provider_name}' at {provider.base_url}")
        return provider


class UnconfiguredProvider(BaseAIProvider):
    """Stand-in used when no API key is configured; every call fails without retry."""

    @property
    def provider_name(self) -> str:
        return "unconfigured"

    async def generate(self, model: str, prompt: str, **kwargs) -> CompletionResult:
        raise ProviderFailureError("No translation provider configured (set OPENAI_API_KEY)")
