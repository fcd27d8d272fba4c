"""
Unit tests for the OpenAI-compatible provider and provider factory.
"""

import json

import httpx
import pytest

from skill_translator.core.exceptions import (
    ProviderFailureError,
    ProviderTransientError,
    TranslationTimeoutError,
)
from skill_translator.services.ai_providers.factory import (
    AIProviderFactory,
    UnconfiguredProvider,
)
from skill_translator.services.ai_providers.openai_provider import (
    CustomOpenAIProvider,
    OpenAIProvider,
    is_transient_status,
)


def completion(text="你好", model="gpt-test"):
    return {
        "model": model,
        "choices": [{"message": {"role": "assistant", "content": text}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3},
    }


def provider_with(handler, **kwargs) -> OpenAIProvider:
    return OpenAIProvider(
        api_key="sk-test",
        base_url="https://llm.example.com/v1/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestGenerate:
    @pytest.mark.asyncio
    async def test_successful_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion())

        response = await provider_with(handler).generate(
            "gpt-test", "Translate this", system="Be exact", max_tokens=100
        )

        assert response.text == "你好"
        assert response.provider == "openai"
        assert response.input_tokens == 12
        assert response.output_tokens == 3
        assert response.finish_reason == "stop"
        assert seen["url"] == "https://llm.example.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["messages"][0] == {"role": "system", "content": "Be exact"}
        assert seen["body"]["max_tokens"] == 100
        assert seen["body"]["stream"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [408, 429, 500, 503])
    async def test_transient_statuses(self, status):
        provider = provider_with(lambda request: httpx.Response(status, text="slow down"))

        with pytest.raises(ProviderTransientError):
            await provider.generate("gpt-test", "hi")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    async def test_permanent_statuses(self, status):
        provider = provider_with(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(ProviderFailureError) as exc_info:
            await provider.generate("gpt-test", "hi")

        assert not isinstance(exc_info.value, ProviderTransientError)

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        provider = provider_with(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(ProviderFailureError):
            await provider.generate("gpt-test", "hi")

    @pytest.mark.asyncio
    async def test_missing_choices(self):
        provider = provider_with(lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(ProviderFailureError):
            await provider.generate("gpt-test", "hi")

    @pytest.mark.asyncio
    async def test_empty_completion(self):
        provider = provider_with(lambda request: httpx.Response(200, json=completion(text="  ")))

        with pytest.raises(ProviderFailureError):
            await provider.generate("gpt-test", "hi")

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderTransientError):
            await provider_with(handler).generate("gpt-test", "hi")

    @pytest.mark.asyncio
    async def test_timeout_is_not_transient(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TranslationTimeoutError):
            await provider_with(handler).generate("gpt-test", "hi")


def test_transient_status_classification():
    assert is_transient_status(429)
    assert is_transient_status(502)
    assert not is_transient_status(400)
    assert not is_transient_status(422)


class TestFactory:
    def test_openai_requires_api_key(self):
        with pytest.raises(ValueError):
            AIProviderFactory.create_provider("openai")

    def test_custom_provider_requires_base_url(self):
        with pytest.raises(ValueError):
            AIProviderFactory.create_provider("custom_openai")

    def test_custom_provider_without_key(self):
        provider = AIProviderFactory.create_provider(
            "custom_openai", base_url="http://localhost:8000/v1"
        )

        assert isinstance(provider, CustomOpenAIProvider)
        assert provider.provider_name == "custom_openai"
        assert provider.base_url == "http://localhost:8000/v1"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown AI provider"):
            AIProviderFactory.create_provider("nonexistent", api_key="x")

    def test_provider_names_are_case_insensitive(self):
        provider = AIProviderFactory.create_provider("OpenAI", api_key="sk-test")

        assert provider.provider_name == "openai"
        assert "openai" in AIProviderFactory.get_available_providers()

    def test_registered_provider_can_be_created(self, monkeypatch, provider_factory):
        monkeypatch.setattr(AIProviderFactory, "_providers", dict(AIProviderFactory._providers))
        AIProviderFactory.register_provider("Fake", provider_factory)

        provider = AIProviderFactory.create_provider("fake")

        assert provider.get_model_identifier("m1") == "fake:m1"

    @pytest.mark.asyncio
    async def test_unconfigured_provider_always_fails(self):
        with pytest.raises(ProviderFailureError):
            await UnconfiguredProvider().generate("gpt-test", "hi")
