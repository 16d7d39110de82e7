"""
Structured logging configuration using structlog.

Every search request binds a search_id into the context so that the log lines
of its site jobs, workers and correlators can be followed together.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

    from structlog.typing import Processor

    from core.config import Settings


SHARED_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.dev.set_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _renderers(json_format: bool) -> list[Processor]:
    if json_format:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def configure_logging(
    *,
    json_format: bool = False,
    log_level: str = "INFO",
) -> None:
    """
    Configure structlog for the engine.

    Log lines go to stderr; stdout is left to the JSON response printed by
    scripts/run_search.py.

    Args:
        json_format: Render JSON lines (production) instead of console output.
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    level = logging.getLevelName(log_level.upper())

    structlog.configure(
        processors=[*SHARED_PROCESSORS, *_renderers(json_format)],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Playwright and asyncio log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)


def configure_from_settings(settings: Settings) -> None:
    """Configure logging from engine settings."""
    configure_logging(
        json_format=settings.json_logs or settings.is_production,
        log_level=settings.log_level,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger.

    Args:
        name: Optional logger name (typically __name__).

    Returns:
        A bound structlog logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_context(**kwargs: object) -> None:
    """
    Bind context variables for the current task.

    Values are copied into every log line emitted afterwards in this context,
    including tasks spawned from it.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def search_context(**kwargs: object) -> Iterator[None]:
    """
    Bind context variables for the duration of a block.

    Only the given keys are removed on exit; context bound by the caller is
    kept.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
