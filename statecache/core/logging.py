"""
Structured logging setup.

Routes both ``structlog`` loggers and plain ``logging`` loggers through one
stdlib handler so infrastructure and service logs share a format.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import get_settings

# Keys that must never reach a log line
_REDACTED_KEYS = frozenset({"password", "REDIS_PASSWORD", "credential"})


def _redact_secrets(logger, method_name, event_dict):
    for key in _REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "**********"
    return event_dict


def configure_logging(
    level: Optional[str] = None, json_logs: Optional[bool] = None
) -> None:
    """Configure structlog and the root logger.

    Defaults come from LOG_LEVEL and LOG_JSON. Safe to call more than once;
    the root handler is replaced each time.
    """
    if level is None or json_logs is None:
        settings = get_settings()
        level = level or settings.LOG_LEVEL
        json_logs = settings.LOG_JSON if json_logs is None else json_logs

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_secrets,
    ]

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors + [structlog.stdlib.ExtraAdder()],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())
