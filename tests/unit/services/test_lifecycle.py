"""
Unit tests for open_cache scoped acquisition.
"""

from unittest.mock import AsyncMock, patch

import pytest

from statecache.core.config import Settings
from statecache.infrastructure.redis.exceptions import (
    RedisConfigurationException,
    RedisConnectionException,
)
from statecache.services.cache import CacheClient, open_cache

FACTORY_MODULE = "statecache.infrastructure.redis.connection_factory"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        REDIS_HOST="cache.internal.example",
        REDIS_PASSWORD="s3cret-redis-password",
        REDIS_KEY_PREFIX="chess:",
    )


@pytest.fixture
def mock_connection():
    with patch(f"{FACTORY_MODULE}.ConnectionPool") as pool_cls, patch(
        f"{FACTORY_MODULE}.Redis"
    ) as redis_cls:
        pool_cls.return_value.disconnect = AsyncMock()
        redis_cls.return_value.ping = AsyncMock(return_value=True)
        yield pool_cls, redis_cls


class TestOpenCache:
    @pytest.mark.asyncio
    async def test_yields_client_and_closes(self, settings, mock_connection):
        pool_cls, redis_cls = mock_connection

        async with open_cache(settings) as cache:
            assert isinstance(cache, CacheClient)
            assert cache.key_serializer.prefix == "chess:"
            assert cache.command_timeout == 2.0
            pool_cls.return_value.disconnect.assert_not_awaited()

        pool_cls.return_value.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closes_on_error(self, settings, mock_connection):
        pool_cls, _ = mock_connection

        with pytest.raises(RuntimeError):
            async with open_cache(settings):
                raise RuntimeError("request handler failed")

        pool_cls.return_value.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_host_prevents_startup(self, mock_connection):
        pool_cls, _ = mock_connection
        settings = Settings(_env_file=None, REDIS_HOST="", REDIS_PASSWORD="x")

        with pytest.raises(RedisConfigurationException):
            async with open_cache(settings):
                pytest.fail("cache must not be yielded without a host")

        pool_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreachable_server_prevents_startup(self, settings, mock_connection):
        _, redis_cls = mock_connection
        redis_cls.return_value.ping.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(RedisConnectionException):
            async with open_cache(settings):
                pytest.fail("cache must not be yielded when Redis is unreachable")

    @pytest.mark.asyncio
    async def test_reads_environment_by_default(self, monkeypatch, mock_connection):
        pool_cls, _ = mock_connection
        monkeypatch.setenv("REDIS_HOST", "env-host.example")
        monkeypatch.setenv("REDIS_PASSWORD", "env-password")
        monkeypatch.setenv("REDIS_SSL", "false")

        async with open_cache():
            pass

        assert pool_cls.call_args.kwargs["host"] == "env-host.example"
