"""
Cache lifecycle

Scoped acquisition of the process-wide cache connection.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog

from ...core.config import Settings, get_settings
from ...infrastructure.redis.connection_factory import (
    RedisConnectionConfig,
    RedisConnectionFactory,
)
from ...infrastructure.redis.serializers import ValueSerializer
from .cache_client import CacheClient

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def open_cache(
    settings: Optional[Settings] = None,
    value_serializer: Optional[ValueSerializer] = None,
) -> AsyncIterator[CacheClient]:
    """
    Build the Redis connection from settings and yield a cache client.

    The connection is closed when the block exits, including on error.
    Configuration and connection errors propagate before anything is yielded,
    so a caller never starts serving without a working cache.

    Usage:
        async with open_cache() as cache:
            await cache.set("session:abc", {"userId": "u1"}, ttl=3600)
    """
    settings = settings or get_settings()
    factory = RedisConnectionFactory(RedisConnectionConfig.from_settings(settings))

    await factory.build()
    logger.info("cache_opened", host=factory.config.host, ssl=factory.config.ssl)
    try:
        yield CacheClient.from_factory(factory, value_serializer=value_serializer)
    finally:
        await factory.close()
        logger.info("cache_closed")
