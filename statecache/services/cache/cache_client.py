"""
Typed Cache Client

Typed get/set/delete over the shared Redis connection. Keys are always
encoded as plain strings; values go through a pluggable serializer and come
back either as generic JSON structures or as a caller-supplied type.
"""

import asyncio
import math
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Dict, Optional, Type, TypeVar, Union, overload

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from redis.asyncio import Redis
from redis.exceptions import (
    AuthenticationError as RedisAuthError,
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    RedisError,
)

from ...infrastructure.redis.connection_factory import RedisConnectionFactory
from ...infrastructure.redis.exceptions import (
    RedisAuthenticationException,
    RedisConnectionException,
    RedisException,
    RedisOperationException,
    RedisOperationTimeoutException,
    RedisSerializationException,
)
from ...infrastructure.redis.serializers import (
    JsonValueSerializer,
    StringKeySerializer,
    ValueSerializer,
)

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")
TTLValue = Union[timedelta, int, float]


@dataclass(frozen=True)
class CacheEntry:
    """A key, its encoded value and the expiry it is written with."""

    key: str
    value: bytes
    ttl: Optional[timedelta] = None


def ttl_to_milliseconds(ttl: TTLValue) -> int:
    """Convert a TTL (timedelta or seconds) to whole milliseconds, rounding up."""
    if isinstance(ttl, bool):
        raise TypeError("TTL must be a timedelta or a number of seconds")
    if isinstance(ttl, timedelta):
        seconds = ttl.total_seconds()
    elif isinstance(ttl, (int, float)):
        seconds = float(ttl)
    else:
        raise TypeError("TTL must be a timedelta or a number of seconds")

    if not seconds > 0:
        raise ValueError("TTL must be positive")
    if not math.isfinite(seconds):
        raise ValueError("TTL must be finite")
    return max(1, math.ceil(seconds * 1000))


class CacheClient:
    """
    Typed cache operations over a shared Redis client.

    Holds no mutable state, so one instance can be shared by any number of
    concurrent tasks. Every failure surfaces as a ``RedisException``
    subclass; nothing is retried and a failure is never reported as a miss.
    """

    def __init__(
        self,
        redis_client: Redis,
        value_serializer: Optional[ValueSerializer] = None,
        key_serializer: Optional[StringKeySerializer] = None,
        command_timeout: Optional[Union[timedelta, float]] = None,
    ):
        self._redis = redis_client
        self.value_serializer = value_serializer or JsonValueSerializer()
        self.key_serializer = key_serializer or StringKeySerializer()
        self._field_serializer = StringKeySerializer()

        if isinstance(command_timeout, timedelta):
            command_timeout = command_timeout.total_seconds()
        self.command_timeout = command_timeout

    @classmethod
    def from_factory(
        cls,
        factory: RedisConnectionFactory,
        value_serializer: Optional[ValueSerializer] = None,
    ) -> "CacheClient":
        """Wrap the connection a built factory owns."""
        return cls(
            factory.client,
            value_serializer=value_serializer,
            key_serializer=StringKeySerializer(factory.config.key_prefix),
            command_timeout=factory.config.command_timeout,
        )

    # Encoding helpers

    def _encode_value(self, key: str, value: Any) -> bytes:
        if value is None:
            raise RedisSerializationException(
                message="Cannot cache None: it would be indistinguishable from a miss",
                key=key,
            )
        try:
            return self.value_serializer.serialize(value)
        except (TypeError, ValueError) as e:
            logger.error(
                "cache_value_encode_failed",
                key=key,
                value_type=type(value).__name__,
                error=str(e),
            )
            raise RedisSerializationException(
                message=f"Value of type {type(value).__name__} cannot be serialized",
                key=key,
                original_error=e,
            )

    def _decode_value(self, key: str, data: Any, target: Optional[Type]) -> Any:
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            return self.value_serializer.deserialize(data, target)
        except (TypeError, ValueError) as e:
            target_name = getattr(target, "__name__", None) if target else None
            logger.error(
                "cache_value_decode_failed",
                key=key,
                target_type=target_name,
                error=str(e),
            )
            raise RedisSerializationException(
                message=f"Stored value for key '{key}' could not be deserialized",
                key=key,
                target_type=target_name,
                original_error=e,
            )

    def build_entry(
        self, key: str, value: Any, ttl: Optional[TTLValue] = None
    ) -> CacheEntry:
        """Encode ``value`` the way ``set`` would write it."""
        self.key_serializer.serialize(key)
        payload = self._encode_value(key, value)
        expiry = None
        if ttl is not None:
            expiry = timedelta(milliseconds=ttl_to_milliseconds(ttl))
        return CacheEntry(key=key, value=payload, ttl=expiry)

    # Command execution

    async def _execute(self, command: Awaitable[Any]) -> Any:
        if self.command_timeout is None:
            return await command
        return await asyncio.wait_for(command, timeout=self.command_timeout)

    @asynccontextmanager
    async def _operation(self, operation: str, key: Optional[str] = None):
        """Run one Redis command, translating client errors into RedisException."""
        with tracer.start_as_current_span(f"cache_client.{operation}") as span:
            span.set_attribute("cache.operation", operation)
            if key is not None:
                span.set_attribute("cache.key", key)

            try:
                yield span

            except RedisException as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                raise

            except (RedisTimeoutError, asyncio.TimeoutError) as e:
                span.set_status(Status(StatusCode.ERROR, "timeout"))
                logger.error(
                    "cache_operation_timeout",
                    operation=operation,
                    key=key,
                    timeout_seconds=self.command_timeout,
                )
                raise RedisOperationTimeoutException(
                    operation=operation,
                    timeout_seconds=self.command_timeout,
                    key=key,
                    original_error=e,
                )

            except RedisAuthError as e:
                span.set_status(Status(StatusCode.ERROR, "authentication failed"))
                logger.error(
                    "cache_authentication_failed", operation=operation, key=key
                )
                raise RedisAuthenticationException(
                    message=f"Redis authentication failed during '{operation}'",
                    original_error=e,
                )

            except (RedisConnectionError, OSError) as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error(
                    "cache_connection_failed",
                    operation=operation,
                    key=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise RedisConnectionException(
                    message=f"Redis connection failed during '{operation}'",
                    operation=operation,
                    key=key,
                    original_error=e,
                )

            except RedisError as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error(
                    "cache_operation_failed",
                    operation=operation,
                    key=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise RedisOperationException(
                    operation=operation, key=key, original_error=e
                )

            else:
                span.set_status(Status(StatusCode.OK))

    # Key/value operations

    async def set(self, key: str, value: Any, ttl: Optional[TTLValue] = None) -> None:
        """
        Store ``value`` under ``key``, replacing any previous value.

        Args:
            key: Cache key
            value: Any JSON-serializable structure, pydantic model or dataclass
            ttl: Optional expiry as timedelta or seconds

        Raises:
            RedisSerializationException: If the value cannot be encoded
            RedisConnectionException: If Redis cannot be reached
        """
        encoded_key = self.key_serializer.serialize(key)
        payload = self._encode_value(key, value)
        px = ttl_to_milliseconds(ttl) if ttl is not None else None

        async with self._operation("set", key) as span:
            span.set_attribute("cache.value_bytes", len(payload))
            if px is not None:
                span.set_attribute("cache.ttl_ms", px)
            # SET with PX writes the value and its expiry in one command
            await self._execute(self._redis.set(encoded_key, payload, px=px))

        logger.debug("cache_set", key=key, ttl_ms=px, size=len(payload))

    @overload
    async def get(self, key: str) -> Any: ...

    @overload
    async def get(self, key: str, target: Type[T]) -> Optional[T]: ...

    async def get(self, key: str, target: Optional[Type[T]] = None) -> Optional[Any]:
        """
        Read the value stored under ``key``.

        Args:
            key: Cache key
            target: Type to validate the stored value into; omit for a generic structure

        Returns:
            The decoded value, or None if the key is absent or expired

        Raises:
            RedisSerializationException: If stored bytes cannot be decoded
            RedisConnectionException: If Redis cannot be reached
        """
        encoded_key = self.key_serializer.serialize(key)

        async with self._operation("get", key) as span:
            data = await self._execute(self._redis.get(encoded_key))
            span.set_attribute("cache.hit", data is not None)

        if data is None:
            logger.debug("cache_miss", key=key)
            return None

        return self._decode_value(key, data, target)

    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns whether an entry existed; absent keys are not an error."""
        encoded_key = self.key_serializer.serialize(key)

        async with self._operation("delete", key):
            removed = await self._execute(self._redis.delete(encoded_key))

        return bool(removed)

    async def exists(self, key: str) -> bool:
        encoded_key = self.key_serializer.serialize(key)

        async with self._operation("exists", key):
            count = await self._execute(self._redis.exists(encoded_key))

        return bool(count)

    async def ttl(self, key: str) -> Optional[timedelta]:
        """Remaining time to live, or None if the key is absent or never expires."""
        encoded_key = self.key_serializer.serialize(key)

        async with self._operation("ttl", key):
            remaining_ms = await self._execute(self._redis.pttl(encoded_key))

        # -2: no such key, -1: no expiry
        if remaining_ms is None or remaining_ms < 0:
            return None
        return timedelta(milliseconds=remaining_ms)

    async def expire(self, key: str, ttl: TTLValue) -> bool:
        """Set a new expiry on an existing key. Returns False if the key is absent."""
        encoded_key = self.key_serializer.serialize(key)
        px = ttl_to_milliseconds(ttl)

        async with self._operation("expire", key):
            updated = await self._execute(self._redis.pexpire(encoded_key, px))

        return bool(updated)

    # Hash operations

    async def set_field(self, name: str, field: str, value: Any) -> None:
        """Store ``value`` in field ``field`` of hash ``name``."""
        encoded_name = self.key_serializer.serialize(name)
        encoded_field = self._field_serializer.serialize(field)
        payload = self._encode_value(f"{name}#{field}", value)

        async with self._operation("hset", name):
            await self._execute(
                self._redis.hset(encoded_name, encoded_field, payload)
            )

    async def get_field(
        self, name: str, field: str, target: Optional[Type[T]] = None
    ) -> Optional[Any]:
        encoded_name = self.key_serializer.serialize(name)
        encoded_field = self._field_serializer.serialize(field)

        async with self._operation("hget", name):
            data = await self._execute(self._redis.hget(encoded_name, encoded_field))

        if data is None:
            return None
        return self._decode_value(f"{name}#{field}", data, target)

    async def get_fields(
        self, name: str, target: Optional[Type[T]] = None
    ) -> Dict[str, Any]:
        """All fields of hash ``name``, each decoded like ``get_field``."""
        encoded_name = self.key_serializer.serialize(name)

        async with self._operation("hgetall", name):
            raw = await self._execute(self._redis.hgetall(encoded_name))

        fields = {}
        for raw_field, data in (raw or {}).items():
            if isinstance(raw_field, bytes):
                field = self._field_serializer.deserialize(raw_field)
            else:
                field = raw_field
            fields[field] = self._decode_value(f"{name}#{field}", data, target)
        return fields

    async def delete_field(self, name: str, field: str) -> bool:
        encoded_name = self.key_serializer.serialize(name)
        encoded_field = self._field_serializer.serialize(field)

        async with self._operation("hdel", name):
            removed = await self._execute(self._redis.hdel(encoded_name, encoded_field))

        return bool(removed)

    # Liveness

    async def ping(self) -> bool:
        """
        Report whether Redis is reachable. Never mutates stored data.

        Returns:
            True if Redis answered PING, False on connection, auth or timeout failure
        """
        try:
            async with self._operation("ping"):
                await self._execute(self._redis.ping())
        except RedisConnectionException as e:
            logger.warning("cache_ping_failed", error=e.message, error_code=e.error_code)
            return False
        return True
