"""
Service wiring.

Builds the long-lived service objects once, from an explicit Settings value,
and tears them down at shutdown.
"""

from dataclasses import dataclass

import sqlalchemy as sa

from skill_translator.core.config import Settings
from skill_translator.core.db import close_db, create_cache_engine, create_session_factory
from skill_translator.core.logging import get_logger
from skill_translator.services.ai_providers.base import BaseAIProvider
from skill_translator.services.ai_providers.factory import AIProviderFactory, UnconfiguredProvider
from skill_translator.services.batch_coordinator import BatchCoordinator
from skill_translator.services.cache_store import CacheStore
from skill_translator.services.markdown_parser import MarkdownParser
from skill_translator.services.translation_orchestrator import TranslationOrchestrator

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: sa.Engine
    cache: CacheStore
    provider: BaseAIProvider
    orchestrator: TranslationOrchestrator
    batch: BatchCoordinator

    def close(self) -> None:
        close_db(self.engine)


def create_provider(settings: Settings) -> BaseAIProvider:
    """Create the configured provider, or a stand-in that always fails."""
    if not settings.provider_configured:
        logger.warning("No provider API key configured, translation requests will fail")
        return UnconfiguredProvider()

    return AIProviderFactory.create_provider(
        settings.ai_provider,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.translation_timeout_seconds,
    )


def build_services(settings: Settings, provider: BaseAIProvider | None = None) -> ServiceContainer:
    """
    Build all services from settings.

    Args:
        settings: Validated settings
        provider: Provider to use instead of the configured one

    Returns:
        ServiceContainer: Ready-to-use services
    """
    engine = create_cache_engine(settings.cache_db_path)
    cache = CacheStore(create_session_factory(engine), max_age_days=settings.cache_max_age_days)
    provider = provider or create_provider(settings)

    orchestrator = TranslationOrchestrator(
        provider,
        cache,
        model=settings.openai_model,
        translator_version=settings.translator_version,
        protected_terms=settings.protected_terms,
        max_concurrent_translations=settings.max_concurrent_translations,
        call_timeout_seconds=settings.translation_timeout_seconds,
        document_timeout_seconds=settings.document_timeout_seconds,
        max_tokens=settings.max_tokens,
        temperature=settings.openai_temperature,
        max_retries=settings.provider_max_retries,
        retry_base_delay=settings.provider_retry_base_delay,
        parser=MarkdownParser(
            max_line_length=settings.max_line_length,
            max_chunk_chars=settings.max_chunk_chars,
        ),
    )
    batch = BatchCoordinator(
        orchestrator, max_parallel_documents=settings.batch_max_parallel_documents
    )

    return ServiceContainer(
        settings=settings,
        engine=engine,
        cache=cache,
        provider=provider,
        orchestrator=orchestrator,
        batch=batch,
    )
