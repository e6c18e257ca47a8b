"""Structured logging helpers."""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int = logging.INFO, *, json_output: bool = True) -> None:
    """Route structlog events through stdlib logging handlers.

    ``json_output=False`` switches to the human-readable console renderer,
    which is handy when replaying queries locally.
    """

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_search_context(*, user_id: str | None = None, surface: str | None = None) -> None:
    """Attach identifiers to every event logged by the current task."""

    context = {key: value for key, value in {"user_id": user_id, "surface": surface}.items() if value}
    if context:
        structlog.contextvars.bind_contextvars(**context)


def clear_search_context() -> None:
    structlog.contextvars.clear_contextvars()


logger = structlog.get_logger()

__all__ = ["bind_search_context", "clear_search_context", "configure_logging", "logger"]
