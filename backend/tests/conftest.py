"""
Pytest fixtures shared by the unit and integration suites: a fake translation
provider, a sample document and isolated settings.
"""

import asyncio
from collections.abc import Callable

import pytest

from skill_translator.core.config import Settings
from skill_translator.services.ai_providers.base import BaseAIProvider, CompletionResult

SAMPLE_SKILL = """---
name: web-monitor
description: "A tool for X"
version: "1.0"
---

# Web Monitor

Use `curl` to fetch the page and compare it with the last snapshot.

```bash
curl -s https://example.com > page.html
diff page.html last.html
```

Run it from GitHub Actions every hour.
"""


def default_translate(text: str) -> str:
    return f"[zh] {text}"


class FakeProvider(BaseAIProvider):
    """
    In-memory provider that records calls.

    Args:
        translate: Function applied to the source text of each prompt
        delay: Seconds each call takes
        errors: Exceptions raised, in order, before calls start succeeding
        fail_on: Raise the given exception whenever the source text contains the key
    """

    def __init__(
        self,
        translate: Callable[[str], str] = default_translate,
        delay: float = 0.0,
        errors: list[Exception] | None = None,
        fail_on: dict[str, Exception] | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.translate = translate
        self.delay = delay
        self.errors = list(errors or [])
        self.fail_on = dict(fail_on or {})
        self.calls: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def provider_name(self) -> str:
        return "fake"

    @staticmethod
    def source_of(prompt: str) -> str:
        return prompt.split("Source text:\n", 1)[1]

    async def generate(self, model: str, prompt: str, system: str | None = None, **kwargs):
        source = self.source_of(prompt)
        self.calls.append(source)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.errors:
                raise self.errors.pop(0)
            for key, error in self.fail_on.items():
                if key in source:
                    raise error
            return CompletionResult(text=self.translate(source), model=model, provider="fake")
        finally:
            self.in_flight -= 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sample_skill() -> str:
    return SAMPLE_SKILL


@pytest.fixture
def provider_factory() -> type[FakeProvider]:
    """The FakeProvider class, for tests that need a custom configuration."""
    return FakeProvider


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def cache_db_path(tmp_path) -> str:
    return str(tmp_path / "cache" / "cache.db")


@pytest.fixture
def test_settings(cache_db_path) -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        local_api_bearer="secret-token",
        cache_db_path=cache_db_path,
        cache_cleanup_enabled=False,
        provider_retry_base_delay=0,
        log_format="text",
        log_level="WARNING",
    )
