"""
Redis Infrastructure Module

Connection management, serialization and the error taxonomy for the
Redis-backed state cache.

This module provides:
- RedisConnectionFactory: validated, TLS-capable connection building
- RedisConnectionConfig: immutable connection parameters
- StringKeySerializer / JsonValueSerializer: key and value encoding
- Exception hierarchy rooted at RedisException
"""

from .connection_factory import RedisConnectionConfig, RedisConnectionFactory
from .serializers import JsonValueSerializer, StringKeySerializer, ValueSerializer
from .exceptions import (
    RedisException,
    RedisConfigurationException,
    RedisConnectionException,
    RedisAuthenticationException,
    RedisOperationTimeoutException,
    RedisSerializationException,
    RedisOperationException,
)

__all__ = [
    # Connection management
    "RedisConnectionConfig",
    "RedisConnectionFactory",
    # Serialization
    "JsonValueSerializer",
    "StringKeySerializer",
    "ValueSerializer",
    # Exceptions
    "RedisException",
    "RedisConfigurationException",
    "RedisConnectionException",
    "RedisAuthenticationException",
    "RedisOperationTimeoutException",
    "RedisSerializationException",
    "RedisOperationException",
]
