"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from selfheal.config.settings import SelfHealSettings

# Chatty third-party loggers used by the SQLite store
_NOISY_LOGGERS = ("aiosqlite", "sqlalchemy.engine")


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog on top of stdlib logging.

    Healing events are emitted as ``logger.info("selector_healed", ...)``; the
    console renderer is used on a TTY and JSON lines everywhere else so CI
    output can be grepped by event name.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output or not sys.stderr.isatty():
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logging_from_settings(settings: SelfHealSettings) -> None:
    """Configure logging from the ``log_level``/``log_json`` settings."""
    setup_logging(log_level=settings.log_level, json_output=settings.log_json)
