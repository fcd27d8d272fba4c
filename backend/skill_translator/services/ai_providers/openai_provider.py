"""
OpenAI AI Provider Implementation.

Supports the OpenAI API and compatible providers (OpenRouter, vLLM, etc.).
"""

import httpx

from skill_translator.core.exceptions import (
    ProviderFailureError,
    ProviderTransientError,
    TranslationTimeoutError,
)
from skill_translator.core.logging import get_logger
from skill_translator.services.ai_providers.base import CompletionResult, BaseAIProvider

logger = get_logger(__name__)

# Statuses worth retrying: timeouts, conflicts, rate limiting and server errors
TRANSIENT_STATUS_CODES = frozenset({408, 409, 425, 429})


def is_transient_status(status_code: int) -> bool:
    return status_code in TRANSIENT_STATUS_CODES or status_code >= 500


class OpenAIProvider(BaseAIProvider):
    """
    OpenAI provider implementation.

    Supports official OpenAI API and compatible endpoints.
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 300,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs,
    ):
        super().__init__(
            api_key=api_key,
            base_url=(base_url or self.DEFAULT_BASE_URL).rstrip("/"),
            timeout=timeout,
            **kwargs,
        )
        if not self.api_key:
            raise ValueError("OpenAI provider requires an API key")
        self._transport = transport

    @property
    def provider_name(self) -> str:
        return "openai"

    def _get_headers(self) -> dict:
        """Get headers for OpenAI API requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def generate(
        self,
        model: str,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.3,
        max_tokens: int | None = None,
        **kwargs,
    ) -> CompletionResult:
        """Generate text using the chat completions endpoint."""
        messages = []

        if system:
            messages.append({"role": "system", "content": system})

        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": False,
        }

        if max_tokens:
            payload["max_tokens"] = max_tokens

        for key in ["top_p", "frequency_penalty", "presence_penalty", "stop"]:
            if key in kwargs:
                payload[key] = kwargs[key]

        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._get_headers(),
                    json=payload,
                )
            except httpx.TimeoutException as e:
                raise TranslationTimeoutError(
                    f"{self.provider_name} request timed out: {e}", self.timeout
                ) from e
            except httpx.TransportError as e:
                raise ProviderTransientError(f"{self.provider_name} network error: {e}") from e

        if response.status_code >= 400:
            message = f"{self.provider_name} returned HTTP {response.status_code}: {response.text[:500]}"
            if is_transient_status(response.status_code):
                logger.warning(message)
                raise ProviderTransientError(message)
            logger.error(message)
            raise ProviderFailureError(message)

        return self._parse_completion(response, model)

    def _parse_completion(self, response: httpx.Response, model: str) -> CompletionResult:
        try:
            data = response.json()
            choice = data["choices"][0]
            text = choice["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderFailureError(
                f"Malformed {self.provider_name} response: {e}"
            ) from e

        if not isinstance(text, str) or not text.strip():
            raise ProviderFailureError(f"{self.provider_name} returned an empty completion")

        usage = data.get("usage") or {}
        return CompletionResult(
            text=text,
            model=data.get("model", model),
            provider=self.provider_name,
            input_tokens=usage.get("prompt_tokens"),
            output_tokens=usage.get("completion_tokens"),
            finish_reason=choice.get("finish_reason"),
        )


class CustomOpenAIProvider(OpenAIProvider):
    """
    Custom OpenAI-compatible provider implementation.

    Works with any API implementing the OpenAI chat completions format
    (OpenRouter, Together AI, LocalAI, vLLM and others).
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 300,
        **kwargs,
    ):
        if not base_url:
            raise ValueError("Custom OpenAI provider requires a base_url")

        super().__init__(
            api_key=api_key or "dummy",  # Local endpoints often take no key
            base_url=base_url,
            timeout=timeout,
            **kwargs,
        )

    @property
    def provider_name(self) -> str:
        return "custom_openai"
