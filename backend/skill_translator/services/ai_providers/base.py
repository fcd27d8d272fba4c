"""
Translation provider interface.

A provider turns one prompt into one completion. Retry policy, timeouts and
concurrency limits belong to the orchestrator; providers only classify their
failures.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class CompletionResult:
    """One model completion and its usage figures."""

    text: str
    model: str
    provider: str
    input_tokens: int | None = None
    output_tokens: int | None = None
    finish_reason: str | None = None


class BaseAIProvider(ABC):
    """
    Abstract translation provider.

    Implementations raise ProviderTransientError for rate limits, network
    errors and 5xx answers, TranslationTimeoutError when the request times
    out, and ProviderFailureError for everything else.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 300,
        **kwargs,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.options = kwargs

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Registry name, e.g. 'openai'."""

    @abstractmethod
    async def generate(
        self,
        model: str,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.3,
        max_tokens: int | None = None,
        **kwargs,
    ) -> CompletionResult:
        """
        Complete a single prompt.

        Args:
            model: Model to call
            prompt: User message
            system: System message, if any
            temperature: Sampling temperature
            max_tokens: Completion token limit (None leaves it to the provider)

        Returns:
            CompletionResult: The completion text and usage
        """

    def get_model_identifier(self, model_name: str) -> str:
        """``provider:model`` label used in logs."""
        return f"{self.provider_name}:{model_name}"
