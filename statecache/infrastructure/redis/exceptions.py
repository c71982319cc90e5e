"""
Redis Infrastructure Exceptions

Error taxonomy for the cache connection layer.
Configuration, connection and serialization failures are kept distinct so
callers can tell a broken setup from an unreachable server from bad data.
"""

from typing import Optional, Any, Dict


class RedisException(Exception):
    """Base exception for Redis-related errors.

    All cache operations raise this or its subclasses.
    Never carries the Redis password in ``message`` or ``details``.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if original_error:
            self.details["original_error"] = str(original_error)
            self.details["original_error_type"] = type(original_error).__name__
        super().__init__(self.message)
        if original_error:
            self.__cause__ = original_error


class RedisConfigurationException(RedisException):
    """Raised when startup configuration is missing or invalid.

    Fatal: raised before any connection attempt.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            error_code="REDIS_CONFIGURATION_ERROR",
            details=details,
            original_error=original_error,
        )
        self.config_key = config_key


class RedisConnectionException(RedisException):
    """Raised when Redis is unreachable, the TLS handshake fails, or the link is lost."""

    def __init__(
        self,
        message: str = "Redis connection failed",
        host: Optional[str] = None,
        port: Optional[int] = None,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
        error_code: str = "REDIS_CONNECTION_ERROR",
    ):
        details = {}
        if host:
            details["host"] = host
        if port:
            details["port"] = port
        if operation:
            details["operation"] = operation
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_error=original_error,
        )


class RedisAuthenticationException(RedisConnectionException):
    """Raised when Redis rejects the configured credentials."""

    def __init__(
        self,
        message: str = "Redis authentication failed",
        username: Optional[str] = None,
        host: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            host=host,
            original_error=original_error,
            error_code="REDIS_AUTH_ERROR",
        )
        if username:
            self.details["username"] = username


class RedisOperationTimeoutException(RedisConnectionException):
    """Raised when a Redis command does not complete within the command timeout."""

    def __init__(
        self,
        operation: str,
        timeout_seconds: Optional[float],
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        if timeout_seconds is None:
            message = f"Redis operation '{operation}' timed out"
        else:
            message = f"Redis operation '{operation}' timed out after {timeout_seconds}s"

        super().__init__(
            message=message,
            operation=operation,
            key=key,
            original_error=original_error,
            error_code="REDIS_TIMEOUT_ERROR",
        )
        self.details["timeout_seconds"] = timeout_seconds


class RedisSerializationException(RedisException):
    """Raised when a value cannot be encoded for storage or decoded on read."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        target_type: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if key:
            details["key"] = key
        if target_type:
            details["target_type"] = target_type

        super().__init__(
            message=message,
            error_code="REDIS_SERIALIZATION_ERROR",
            details=details,
            original_error=original_error,
        )


class RedisOperationException(RedisException):
    """Raised when Redis answers a command with an error reply (e.g. WRONGTYPE)."""

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {"operation": operation}
        if key:
            details["key"] = key

        super().__init__(
            message=f"Redis operation '{operation}' failed",
            error_code="REDIS_OPERATION_ERROR",
            details=details,
            original_error=original_error,
        )
