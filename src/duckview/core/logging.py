"""Structured logging infrastructure.

This module provides logging that works for:
- Local CLI use (rich console output on stderr)
- Machine consumption (JSON structured logs)
- The TUI, where logs go to a file so they do not corrupt the screen

Usage:
    from duckview.core.logging import get_logger, configure_logging

    # Configure at startup
    configure_logging(log_level="INFO", log_format="console")

    # Get logger in any module
    logger = get_logger(__name__)

    # Log with structured context
    logger.info("page_committed", page=2, rows=100)

    # Use context managers for automatic context propagation
    with log_context(session_id=3):
        logger.info("relation_registered", relation="relation_3")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from pathlib import Path
from typing import Any, TextIO, cast

import structlog
from structlog.typing import FilteringBoundLogger

# Context variables for correlation
_view_context: ContextVar[dict[str, Any] | None] = ContextVar("view_context", default=None)

# Open handle when logging to a file (TUI mode)
_log_stream: TextIO | None = None


def _add_view_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add scoped view context to log events."""
    context = _view_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def _open_stream(log_file: Path | None) -> TextIO:
    """Return the stream logs are written to, replacing any earlier log file."""
    global _log_stream

    if _log_stream is not None:
        _log_stream.close()
        _log_stream = None

    if log_file is None:
        return sys.stderr

    log_file.parent.mkdir(parents=True, exist_ok=True)
    _log_stream = log_file.open("a", encoding="utf-8")
    return _log_stream


def configure_logging(
    log_level: str = "WARNING",
    log_format: str = "console",
    show_timestamps: bool = True,
    color: bool = True,
    log_file: Path | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format ("console" for humans, "json" for machines)
        show_timestamps: Whether to show timestamps in console mode
        color: Whether to use colors in console mode (ignored for files)
        log_file: Write logs to this file instead of stderr
    """
    stream = _open_stream(log_file)
    if log_file is not None:
        color = False

    # Shared processors for all formats
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_view_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if show_timestamps:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=color,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )

    # Also configure stdlib logging for libraries
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.StreamHandler(stream)],
        force=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return cast(FilteringBoundLogger, structlog.get_logger(name))


class LogContext:
    """Context manager for adding context to logs within a scope."""

    def __init__(self, **context: Any):
        """Initialize with context key-value pairs."""
        self.context = context
        self.token: Any = None

    def __enter__(self) -> LogContext:
        """Enter context, adding values to log context."""
        current = _view_context.get() or {}
        new_context = {**current, **self.context}
        self.token = _view_context.set(new_context)
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context, restoring previous values."""
        if self.token:
            _view_context.reset(self.token)


def log_context(**context: Any) -> LogContext:
    """Create a context manager for scoped logging context.

    Usage:
        with log_context(session_id=1, generation=4):
            logger.info("dispatching")  # Will include session_id and generation
    """
    return LogContext(**context)


# Initialize with default configuration
configure_logging()
