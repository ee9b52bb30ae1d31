"""
Shared pytest fixtures for all test modules.

Collaborators are swapped through `app.dependency_overrides`, so no test
ever reaches Cloudinary, OpenAI or Upstash.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from tests.mocks.inference_mock import FakeDetector
from tests.mocks.redis_mock import MockRedis
from tests.mocks.store_mock import FakeStore

from app.core.dependencies import get_detector, get_store
from app.main import app


# ---------------------------------------------------------------------------
# Core infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_redis(monkeypatch):
    """Replace redis_client.client with an in-memory MockRedis."""
    from app.integrations import redis_client as rc

    mock_rc = MockRedis()
    monkeypatch.setattr(rc, "client", mock_rc)
    return mock_rc


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_detector():
    return FakeDetector()


@pytest.fixture
def client(mock_redis, fake_store, fake_detector):
    """
    FastAPI TestClient with fake store / detector and mocked Redis.

    redis_client.initialize() is patched to a no-op so it can't overwrite the
    mock or attempt a real connection during the lifespan startup.
    """
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_detector] = lambda: fake_detector
    try:
        with patch("app.integrations.redis_client.initialize"):
            with TestClient(app, raise_server_exceptions=False) as c:
                yield c
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Shared test-data helpers
# ---------------------------------------------------------------------------


TINY_JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00fake-jpeg-body\xff\xd9"


@pytest.fixture
def tiny_jpg(tmp_path) -> str:
    """Write a few JPEG-looking bytes to a temp file and return the path."""
    p = tmp_path / "test.jpg"
    p.write_bytes(TINY_JPEG)
    return str(p)
