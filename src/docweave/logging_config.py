"""structlog setup shared by the CLI, the sources and the extraction engine."""

from __future__ import annotations

import logging
import sys

import structlog


class LogFormat:
    """Log renderer choices."""

    CONSOLE = "console"
    JSON = "json"


def setup_third_party_logging() -> None:
    """Keep HTTP client chatter out of the docweave log stream."""
    for logger_name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def configure_logging(level: str = "INFO", fmt: str = LogFormat.CONSOLE) -> None:
    """Configure structlog to write to stderr.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        fmt: ``console`` for human-readable lines, ``json`` for one JSON object per event
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    setup_third_party_logging()

    renderer: structlog.typing.Processor
    if fmt == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name or "docweave")
