"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import AsyncMock

# Keep tests independent of the developer's environment
os.environ.setdefault("CARTY_CURRENCY", "USD")
os.environ.pop("UPSTASH_REDIS_REST_URL", None)
os.environ.pop("UPSTASH_REDIS_REST_TOKEN", None)

from carty.config import reset_default_options  # noqa: E402
from carty.storage import MemoryStore  # noqa: E402
from tests.stores import FailingStore, RecordingStore  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_defaults():
    """Module-level cart defaults must not leak between tests"""
    reset_default_options()
    yield
    reset_default_options()


@pytest.fixture
def memory_store():
    """Empty in-memory store"""
    return MemoryStore()


@pytest.fixture
def slow_store():
    """Store with artificial latency"""
    return RecordingStore(latency=0.01)


@pytest.fixture
def failing_store():
    """Store rejecting every write"""
    return FailingStore()


@pytest.fixture
def mock_redis():
    """Mock Upstash async Redis client"""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def sample_item():
    """Sample item attributes"""
    return {
        "id": "sku-123",
        "label": "Coffee beans",
        "currency": "USD",
        "price": 12.5,
        "shipping": 2,
        "tax": 1,
        "quantity": 2,
        "variant": {"size": "1kg", "roast": "dark"},
        "origin": "Ethiopia",
    }
