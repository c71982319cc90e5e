"""
statecache Configuration

Configuration management with environment variable support.
Values are read once at startup and validated eagerly; the Redis host and
password are checked again when the connection is built.
"""

import re
from datetime import timedelta
from functools import lru_cache
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """Parse ``2000ms``, ``2s``, ``1.5m``, ``1h`` or bare milliseconds into a timedelta."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(milliseconds=value)

    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ValueError(
            f"Invalid duration: {value!r}. Use a number with ms, s, m or h suffix."
        )
    amount, unit = match.groups()
    return _DURATION_UNITS[(unit or "ms").lower()] * float(amount)


class Settings(BaseSettings):
    """Application settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Redis configuration
    REDIS_HOST: str = Field(default="", description="Redis server hostname")
    REDIS_PORT: int = Field(
        default=6379, ge=1, le=65535, description="Redis server port"
    )
    REDIS_PASSWORD: SecretStr = Field(
        default=SecretStr(""), description="Redis AUTH password"
    )
    REDIS_USERNAME: Optional[str] = Field(
        default=None, description="Redis ACL username"
    )
    REDIS_DB: int = Field(default=0, ge=0, description="Redis logical database")
    REDIS_SSL: bool = Field(default=True, description="Negotiate TLS for all traffic")
    REDIS_TIMEOUT: timedelta = Field(
        default=timedelta(milliseconds=2000),
        description="Upper bound for a single Redis command",
    )
    REDIS_SSL_CERT_REQS: str = Field(
        default="required", description="Server certificate verification mode"
    )
    REDIS_SSL_CA_CERTS: Optional[str] = Field(
        default=None, description="CA bundle used to verify the server certificate"
    )
    REDIS_SSL_CHECK_HOSTNAME: bool = Field(
        default=True, description="Verify the server hostname against its certificate"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=50, description="Redis connection pool size"
    )
    REDIS_KEY_PREFIX: str = Field(
        default="", description="Namespace prepended to every cache key"
    )

    # OpenTelemetry configuration
    OTEL_REDIS_INSTRUMENTATION_ENABLED: bool = Field(
        default=False, description="Enable OpenTelemetry Redis instrumentation"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=True, description="Render logs as JSON lines")

    @field_validator("REDIS_TIMEOUT", mode="before")
    @classmethod
    def validate_redis_timeout(cls, v):
        """Accept Spring-style durations such as ``2000ms``."""
        duration = parse_duration(v)
        if duration <= timedelta(0):
            raise ValueError("REDIS_TIMEOUT must be positive")
        return duration

    @field_validator("REDIS_SSL_CERT_REQS")
    @classmethod
    def validate_ssl_cert_reqs(cls, v):
        """Validate certificate verification mode."""
        allowed = ["required", "optional", "none"]
        if v.lower() not in allowed:
            raise ValueError(f"REDIS_SSL_CERT_REQS must be one of: {allowed}")
        return v.lower()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
