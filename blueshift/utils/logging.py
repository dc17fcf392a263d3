"""Logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog

from blueshift.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure structured logging for the application."""
    # Set up standard library logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level or settings.log_level),
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Configure structlog
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Add renderer based on format
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def get_deployment_logger(name: str, uuid: str) -> structlog.stdlib.BoundLogger:
    """Get a logger that stamps every line with a deployment's correlation id."""
    return get_logger(name).bind(uuid=uuid)
