"""
Pytest configuration and fixtures for unit tests.

Provides a cache store backed by a temporary SQLite file.
"""

from collections.abc import Generator

import pytest

from skill_translator.core.db import create_cache_engine, create_session_factory
from skill_translator.services.cache_store import CacheStore


@pytest.fixture
def cache_engine(cache_db_path):
    engine = create_cache_engine(cache_db_path)
    yield engine
    engine.dispose()


@pytest.fixture
def cache_store(cache_engine) -> Generator[CacheStore, None, None]:
    yield CacheStore(create_session_factory(cache_engine), max_age_days=30)
