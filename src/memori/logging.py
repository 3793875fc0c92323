"""Logging configuration with structlog for JSON output in production."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from memori.config import get_settings


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure logging with structlog.

    Memori modules log through ``logging.getLogger(__name__)``; this routes
    those records through structlog's formatter so a host application gets
    consistent console or JSON output.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL.
        json_output: Force JSON output. If None, auto-detect (JSON in prod).
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    if json_output is None:
        json_output = settings.app_env == "prod"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger("memori")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)
    root.propagate = False


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs (entity, session, ...) to the structlog context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all structlog context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def bound_context(**kwargs: object) -> Iterator[None]:
    """Bind context for the duration of a block, restoring the previous values after."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
