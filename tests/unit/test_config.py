"""
Unit tests for environment configuration.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from statecache.core.config import Settings, parse_duration
from statecache.infrastructure.redis.connection_factory import RedisConnectionConfig


class TestParseDuration:
    """Test duration parsing for REDIS_TIMEOUT."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2000ms", timedelta(milliseconds=2000)),
            ("2s", timedelta(seconds=2)),
            ("1.5m", timedelta(seconds=90)),
            ("1h", timedelta(hours=1)),
            ("250", timedelta(milliseconds=250)),
            (500, timedelta(milliseconds=500)),
        ],
    )
    def test_accepted_formats(self, raw, expected):
        assert parse_duration(raw) == expected

    def test_timedelta_passthrough(self):
        assert parse_duration(timedelta(seconds=3)) == timedelta(seconds=3)

    @pytest.mark.parametrize("raw", ["fast", "10 days", "", "ms"])
    def test_rejects_garbage(self, raw):
        with pytest.raises(ValueError):
            parse_duration(raw)


class TestSettings:
    """Test Settings defaults and validation."""

    def test_defaults(self, monkeypatch):
        for name in ("REDIS_HOST", "REDIS_PASSWORD", "REDIS_SSL", "REDIS_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.REDIS_HOST == ""
        assert settings.REDIS_PORT == 6379
        assert settings.REDIS_SSL is True
        assert settings.REDIS_TIMEOUT == timedelta(milliseconds=2000)
        assert settings.REDIS_SSL_CERT_REQS == "required"
        assert settings.REDIS_PASSWORD.get_secret_value() == ""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("REDIS_HOST", "eu1-cache.example.io")
        monkeypatch.setenv("REDIS_PORT", "6380")
        monkeypatch.setenv("REDIS_PASSWORD", "hunter2")
        monkeypatch.setenv("REDIS_SSL", "false")
        monkeypatch.setenv("REDIS_TIMEOUT", "750ms")

        settings = Settings(_env_file=None)

        assert settings.REDIS_HOST == "eu1-cache.example.io"
        assert settings.REDIS_PORT == 6380
        assert settings.REDIS_SSL is False
        assert settings.REDIS_TIMEOUT == timedelta(milliseconds=750)
        assert settings.REDIS_PASSWORD.get_secret_value() == "hunter2"

    def test_password_hidden_in_repr(self):
        settings = Settings(_env_file=None, REDIS_PASSWORD="hunter2")
        assert "hunter2" not in repr(settings)

    def test_rejects_invalid_port(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, REDIS_PORT=70000)

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, REDIS_TIMEOUT="0ms")

    def test_rejects_unknown_cert_mode(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, REDIS_SSL_CERT_REQS="sometimes")

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, LOG_LEVEL="warning").LOG_LEVEL == "WARNING"


class TestConnectionConfigFromSettings:
    """Test projection of settings onto RedisConnectionConfig."""

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            REDIS_HOST="cache.example.io",
            REDIS_PORT=6390,
            REDIS_PASSWORD="hunter2",
            REDIS_SSL=True,
            REDIS_TIMEOUT="3s",
            REDIS_KEY_PREFIX="chess:",
        )

        config = RedisConnectionConfig.from_settings(settings)

        assert config.host == "cache.example.io"
        assert config.port == 6390
        assert config.password == "hunter2"
        assert config.ssl is True
        assert config.command_timeout == timedelta(seconds=3)
        assert config.timeout_seconds == 3.0
        assert config.key_prefix == "chess:"

    def test_repr_excludes_password(self):
        config = RedisConnectionConfig(host="h", password="hunter2")
        assert "hunter2" not in repr(config)

    def test_config_is_immutable(self):
        config = RedisConnectionConfig(host="h", password="p")
        with pytest.raises(AttributeError):
            config.host = "other"
