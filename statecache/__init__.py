"""
statecache

Managed Redis connection and typed cache client for transient application
state: sessions, game state and rate-limit counters.
"""

from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .infrastructure.redis import (
    JsonValueSerializer,
    RedisAuthenticationException,
    RedisConfigurationException,
    RedisConnectionConfig,
    RedisConnectionException,
    RedisConnectionFactory,
    RedisException,
    RedisOperationException,
    RedisOperationTimeoutException,
    RedisSerializationException,
    StringKeySerializer,
    ValueSerializer,
)
from .services.cache import CacheClient, CacheEntry, open_cache

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "RedisConnectionConfig",
    "RedisConnectionFactory",
    "CacheClient",
    "CacheEntry",
    "open_cache",
    "JsonValueSerializer",
    "StringKeySerializer",
    "ValueSerializer",
    "RedisException",
    "RedisConfigurationException",
    "RedisConnectionException",
    "RedisAuthenticationException",
    "RedisOperationTimeoutException",
    "RedisSerializationException",
    "RedisOperationException",
]
