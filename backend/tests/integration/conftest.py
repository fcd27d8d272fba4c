"""
Pytest configuration for integration tests.

Provides a running application wired to a temporary cache and a fake provider.
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from skill_translator.main import create_app


@pytest.fixture
def client(test_settings, fake_provider) -> Generator[TestClient, None, None]:
    """Test client with startup and shutdown run around each test."""
    app = create_app(test_settings, provider=fake_provider)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(test_settings) -> dict:
    return {"Authorization": f"Bearer {test_settings.local_api_bearer}"}
