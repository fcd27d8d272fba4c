"""
Unit tests for settings parsing and service wiring.
"""

from skill_translator.core.config import Settings
from skill_translator.services.ai_providers.factory import UnconfiguredProvider
from skill_translator.services.ai_providers.openai_provider import OpenAIProvider
from skill_translator.services.container import build_services, create_provider


def test_comma_separated_lists(monkeypatch):
    monkeypatch.setenv("PROTECTED_TERMS", "GitHub, ClawHub ,,CLI")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test,http://b.test")

    settings = Settings(_env_file=None)

    assert settings.protected_terms == ["GitHub", "ClawHub", "CLI"]
    assert settings.cors_origins == ["http://a.test", "http://b.test"]


def test_batch_parallelism_defaults_to_global_cap():
    settings = Settings(_env_file=None, max_concurrent_translations=3)

    assert settings.batch_max_parallel_documents == 3


def test_provider_without_key_is_unconfigured():
    settings = Settings(_env_file=None, openai_api_key="")

    assert settings.provider_configured is False
    assert isinstance(create_provider(settings), UnconfiguredProvider)


def test_configured_provider(test_settings):
    assert isinstance(create_provider(test_settings), OpenAIProvider)


def test_build_services_wires_settings(test_settings, fake_provider):
    services = build_services(test_settings, provider=fake_provider)
    try:
        assert services.provider is fake_provider
        assert services.orchestrator.translator_version == test_settings.translator_version
        assert services.batch.max_parallel_documents == test_settings.batch_max_parallel_documents
        assert services.cache.max_age_days == test_settings.cache_max_age_days
    finally:
        services.close()
