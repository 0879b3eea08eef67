"""
Shared fixtures for the SafeMed test suite
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings, settings
from app.main import app
from app.services.mock_store import MockEMRStore


@pytest.fixture
def mock_settings():
    """Settings for mock mode"""
    return Settings(environment="test", mock_api=True, emr_api_token=None)


@pytest.fixture
def live_settings():
    """Settings pointing at a fake remote EMR"""
    return Settings(
        environment="test",
        mock_api=False,
        emr_base_url="https://emr.test/",
        emr_api_token="secret-token",
    )


@pytest.fixture
def store():
    """Store seeded with the demo patient (Jane Doe, allergic to penicillin)"""
    return MockEMRStore(seed_demo_data=True)


@pytest.fixture
def client(monkeypatch):
    """Application client running in mock mode with a fresh store"""
    monkeypatch.setattr(settings, "mock_api", True)
    monkeypatch.setattr(settings, "mock_seed_demo_data", True)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
