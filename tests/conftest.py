"""
Main pytest configuration for statecache tests.

Unit tests run against an in-memory Redis stand-in. Tests marked
``integration`` need a live Redis and only run when
REDIS_INTEGRATION_TESTS=1; otherwise they are reported as skipped.
"""

import os

import pytest

# Set test environment variables before importing application modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from statecache.core.config import get_settings
from statecache.infrastructure.redis.connection_factory import RedisConnectionConfig
from statecache.services.cache import CacheClient
from tests.fixtures.in_memory_redis import FakeClock, InMemoryRedis

INTEGRATION_FLAG = "REDIS_INTEGRATION_TESTS"


def integration_enabled() -> bool:
    return os.getenv(INTEGRATION_FLAG, "").lower() in ("1", "true", "yes")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; tests that patch the env need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def in_memory_redis(fake_clock):
    return InMemoryRedis(clock=fake_clock)


@pytest.fixture
def cache_client(in_memory_redis):
    """Cache client wired to the in-memory Redis stand-in."""
    return CacheClient(in_memory_redis)


@pytest.fixture
def connection_config():
    """Valid TLS connection config pointing at an unroutable host."""
    return RedisConnectionConfig(
        host="cache.internal.example",
        port=6380,
        password="s3cret-redis-password",
    )


# Test markers and configuration
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "redis: marks tests as Redis-related")
    config.addinivalue_line(
        "markers",
        f"integration: needs a live Redis; enable with {INTEGRATION_FLAG}=1",
    )


def pytest_collection_modifyitems(config, items):
    """Add markers based on test file location and gate integration tests."""
    skip_integration = pytest.mark.skip(
        reason=f"live Redis tests disabled; set {INTEGRATION_FLAG}=1 to run"
    )
    for item in items:
        if "redis" in item.nodeid:
            item.add_marker(pytest.mark.redis)
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        if "integration" in item.keywords and not integration_enabled():
            item.add_marker(skip_integration)
