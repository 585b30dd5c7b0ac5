"""Logging configuration for certledger.

Module loggers are plain ``structlog.get_logger(__name__)`` calls; this module
wires them to the standard library so the CLI controls level and rendering.
"""

import logging
import os
import sys
from typing import Any, Optional

import structlog

_TRUTHY = {"1", "true", "yes", "on"}


def get_log_level() -> str:
    """Get log level from CERTLEDGER_LOG_LEVEL, defaulting to WARNING."""
    return os.getenv("CERTLEDGER_LOG_LEVEL", "WARNING").upper()


def use_json_logs() -> bool:
    return os.getenv("CERTLEDGER_LOG_JSON", "").strip().lower() in _TRUTHY


def setup_stdlib_logging(level: str) -> None:
    """Send all records to stderr so command output on stdout stays clean."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def setup_structlog(json: bool) -> None:
    """Configure structlog for structured logging."""
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.contextvars.merge_contextvars,
    ]

    if json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """Configure all logging for the application.

    Args:
        level: Log level name. Defaults to CERTLEDGER_LOG_LEVEL, then WARNING
        json: Render JSON lines. Defaults to CERTLEDGER_LOG_JSON
    """
    level = (level or get_log_level()).upper()
    if json is None:
        json = use_json_logs()
    setup_stdlib_logging(level)
    setup_structlog(json)


def add_context(**kwargs: Any) -> None:
    """Add context variables that will be included in all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()
