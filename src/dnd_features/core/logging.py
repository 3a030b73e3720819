"""Structured logging for dnd-features.

Modules log through ``get_logger(__name__)`` with key-value context. The
host application sets up rendering once, from the settings or explicitly:

    >>> configure_logging(get_settings())
    >>> get_logger(__name__).info("Feature seeded", feature_id="ki-points")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog

from dnd_features.core.config import Settings, get_settings


if TYPE_CHECKING:
    from structlog.types import EventDict, Processor, WrappedLogger


def _app_context(app_name: str) -> Processor:
    def add_app_context(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        return event_dict

    return add_app_context


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
) -> None:
    """Configure structlog rendering for the host application.

    Args:
        settings: Source of ``log_level``, ``json_logs`` and ``app_name``;
            defaults to the application settings.
        level: Overrides the settings' log level.
        json_format: Overrides the settings' JSON switch.
    """
    settings = settings or get_settings()
    level_name = (level or settings.log_level).upper()
    json_output = settings.json_logs if json_format is None else json_format

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _app_context(settings.app_name),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger; module code passes ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach key-value pairs to every log line of the current task.

    Example:
        >>> bind_context(character_id="c-42")
        >>> logger.info("Migrating")  # includes character_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove keys added with ``bind_context``, leaving the rest bound."""
    structlog.contextvars.unbind_contextvars(*keys)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
]
