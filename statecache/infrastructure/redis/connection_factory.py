"""
Redis Connection Factory

Builds the single, validated Redis connection a process uses for its
lifetime. Configuration is checked before any socket is opened; the TLS
handshake and authentication are verified eagerly with PING so a bad setup
fails at startup instead of on first use.
"""

import asyncio
import logging
import ssl
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.connection import Connection, SSLConnection
from redis.exceptions import (
    AuthenticationError as RedisAuthError,
    TimeoutError as RedisTimeoutError,
    RedisError,
)

from opentelemetry import trace
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.trace import Status, StatusCode

from ...core.config import Settings
from .exceptions import (
    RedisAuthenticationException,
    RedisConfigurationException,
    RedisConnectionException,
    RedisOperationTimeoutException,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class RedisConnectionConfig:
    """Connection parameters, fixed once the factory is built."""

    host: str
    port: int = 6379
    password: str = field(default="", repr=False)
    ssl: bool = True
    command_timeout: timedelta = timedelta(milliseconds=2000)
    username: Optional[str] = None
    db: int = 0
    ssl_cert_reqs: str = "required"
    ssl_ca_certs: Optional[str] = None
    ssl_check_hostname: bool = True
    max_connections: int = 10
    key_prefix: str = ""
    instrumentation_enabled: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisConnectionConfig":
        """Project environment settings onto a connection config."""
        return cls(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD.get_secret_value(),
            ssl=settings.REDIS_SSL,
            command_timeout=settings.REDIS_TIMEOUT,
            username=settings.REDIS_USERNAME,
            db=settings.REDIS_DB,
            ssl_cert_reqs=settings.REDIS_SSL_CERT_REQS,
            ssl_ca_certs=settings.REDIS_SSL_CA_CERTS,
            ssl_check_hostname=settings.REDIS_SSL_CHECK_HOSTNAME,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            key_prefix=settings.REDIS_KEY_PREFIX,
            instrumentation_enabled=settings.OTEL_REDIS_INSTRUMENTATION_ENABLED,
        )

    @property
    def timeout_seconds(self) -> float:
        return self.command_timeout.total_seconds()


class RedisConnectionFactory:
    """
    Factory for the process-wide Redis connection.

    Build once at startup, share the returned client across tasks, and
    close once at shutdown. The client is pool-backed and safe for
    concurrent use.
    """

    def __init__(self, config: RedisConnectionConfig):
        self.config = config
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None
        self._lock = asyncio.Lock()

    def validate(self) -> None:
        """Fail fast on missing host or password. Performs no I/O."""
        if not self.config.host or not self.config.host.strip():
            self._configuration_error(
                "Redis host is not configured. Set REDIS_HOST environment variable.",
                "REDIS_HOST",
            )
        if not self.config.password or not self.config.password.strip():
            self._configuration_error(
                "Redis password is not configured. Set REDIS_PASSWORD environment variable.",
                "REDIS_PASSWORD",
            )
        if self.config.command_timeout <= timedelta(0):
            self._configuration_error(
                "Redis command timeout must be positive. Check REDIS_TIMEOUT.",
                "REDIS_TIMEOUT",
            )

    def _configuration_error(self, message: str, config_key: str) -> None:
        logger.error(
            "Redis configuration invalid",
            extra={
                "config_key": config_key,
                "host": self.config.host,
                "port": self.config.port,
            },
        )
        raise RedisConfigurationException(message=message, config_key=config_key)

    def _connection_kwargs(self) -> Dict[str, Any]:
        """Connection pool parameters derived from the config."""
        timeout = self.config.timeout_seconds
        kwargs: Dict[str, Any] = {
            "host": self.config.host.strip(),
            "port": self.config.port,
            "username": self.config.username,
            "password": self.config.password,
            "db": self.config.db,
            "socket_timeout": timeout,
            "socket_connect_timeout": timeout,
            "max_connections": self.config.max_connections,
            "connection_class": Connection,
        }

        if self.config.ssl:
            kwargs.update(
                {
                    "connection_class": SSLConnection,
                    "ssl_cert_reqs": self.config.ssl_cert_reqs,
                    "ssl_ca_certs": self.config.ssl_ca_certs,
                    "ssl_check_hostname": self.config.ssl_check_hostname,
                }
            )

        return kwargs

    async def build(self) -> Redis:
        """
        Build and verify the Redis connection.

        Returns:
            Pool-backed Redis client shared by all callers

        Raises:
            RedisConfigurationException: If host or password is missing
            RedisAuthenticationException: If Redis rejects the credentials
            RedisOperationTimeoutException: If Redis does not answer in time
            RedisConnectionException: If the server or TLS handshake fails
        """
        self.validate()

        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is not None:
                return self._client

            if self.config.instrumentation_enabled:
                self._enable_instrumentation()

            with tracer.start_as_current_span("redis.connection_factory.build") as span:
                span.set_attribute("redis.host", self.config.host)
                span.set_attribute("redis.port", self.config.port)
                span.set_attribute("redis.ssl", self.config.ssl)

                pool = ConnectionPool(**self._connection_kwargs())
                client = Redis(connection_pool=pool)

                try:
                    await self._test_connection(client)
                except RedisConnectionException as e:
                    span.set_status(Status(StatusCode.ERROR, e.message))
                    await pool.disconnect()
                    raise

                self._pool = pool
                self._client = client
                span.set_status(Status(StatusCode.OK))

            logger.info(
                "Redis connection established",
                extra={
                    "host": self.config.host,
                    "port": self.config.port,
                    "ssl": self.config.ssl,
                    "max_connections": self.config.max_connections,
                },
            )
            return client

    async def _test_connection(self, client: Redis) -> None:
        """Verify reachability, TLS and AUTH with a PING."""
        timeout = self.config.timeout_seconds
        try:
            await asyncio.wait_for(client.ping(), timeout=timeout)
            logger.debug("Redis connection test successful")
        except RedisAuthError as e:
            logger.error(
                "Redis authentication failed",
                extra={"host": self.config.host, "error": str(e)},
            )
            raise RedisAuthenticationException(
                message="Redis authentication failed during initialization",
                username=self.config.username,
                host=self.config.host,
                original_error=e,
            )
        except (RedisTimeoutError, asyncio.TimeoutError) as e:
            logger.error(
                "Redis connection test timed out",
                extra={"host": self.config.host, "timeout_seconds": timeout},
            )
            raise RedisOperationTimeoutException(
                operation="ping", timeout_seconds=timeout, original_error=e
            )
        except (RedisError, ssl.SSLError, OSError) as e:
            logger.error(
                "Redis connection test failed",
                extra={"host": self.config.host, "port": self.config.port, "error": str(e)},
            )
            raise RedisConnectionException(
                message="Redis connection test failed",
                host=self.config.host,
                port=self.config.port,
                original_error=e,
            )

    def _enable_instrumentation(self) -> None:
        try:
            RedisInstrumentor().instrument()
            logger.info("Redis OpenTelemetry instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to enable Redis OpenTelemetry instrumentation: {e}")

    @property
    def client(self) -> Redis:
        """The built Redis client."""
        if self._client is None:
            raise RedisConfigurationException(
                "Redis connection accessed before RedisConnectionFactory.build()"
            )
        return self._client

    @property
    def is_built(self) -> bool:
        return self._client is not None

    async def health_check(self) -> Dict[str, Any]:
        """
        Ping Redis and report reachability.

        Returns:
            Health status with response time, or the error when unreachable
        """
        health_status: Dict[str, Any] = {
            "status": "unhealthy",
            "timestamp": time.time(),
        }

        if self._client is None:
            health_status["error"] = "Redis connection not built"
            return health_status

        try:
            start_time = time.time()
            await asyncio.wait_for(
                self._client.ping(), timeout=self.config.timeout_seconds
            )
            response_time = time.time() - start_time

            health_status["status"] = "healthy"
            health_status["response_time_ms"] = round(response_time * 1000, 2)

        except (RedisError, asyncio.TimeoutError, OSError) as e:
            health_status["error"] = str(e) or type(e).__name__
            logger.error(f"Redis health check failed: {e}")

        return health_status

    async def close(self) -> None:
        """Release the connection pool."""
        async with self._lock:
            if self._pool is None:
                return
            try:
                await self._pool.disconnect()
            except (RedisError, OSError) as e:
                logger.warning(f"Error closing Redis pool: {e}")
            finally:
                self._pool = None
                self._client = None

            logger.info("Redis connection closed")

    def get_metrics(self) -> Dict[str, Any]:
        """Get connection factory metrics."""
        metrics: Dict[str, Any] = {
            "built": self.is_built,
            "host": self.config.host,
            "port": self.config.port,
            "ssl": self.config.ssl,
            "command_timeout_seconds": self.config.timeout_seconds,
            "max_connections": self.config.max_connections,
        }
        if self._pool is not None:
            metrics["created_connections"] = getattr(
                self._pool, "_created_connections", 0
            )
        return metrics

    async def __aenter__(self) -> Redis:
        return await self.build()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
