"""
Structured logging for the resilience layer.

Every module logs through ``get_logger(__name__)`` and emits snake_case events
with key/value context (``logger.warning("retry_scheduled", attempt=2,
delay=2.0)``). The library never configures logging on import: the host calls
``configure_logging`` (or ``configure_from_settings``) once at startup, and
until then structlog's defaults apply. Only structlog is configured; the
stdlib root logger is left alone.

Processor chain::

    merge_contextvars        request_id bound by RetryExecutor.execute
    add_log_level
    TimeStamper (ISO, UTC)
    StackInfoRenderer / set_exc_info
    _ecs_fields              service.name, @timestamp, log.level (JSON only)
    JSONRenderer | ConsoleRenderer

Scoped context uses structlog directly::

    from structlog.contextvars import bound_contextvars

    with bound_contextvars(request_id="req-42"):
        logger.info("summary_requested", length="short")
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from resilient.core.settings import ResilienceSettings

_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}


class _ECSFields:
    """Stamp the service name and rename fields to their ECS names."""

    def __init__(self, service: str, rename: bool):
        self.service = service
        self.rename = rename

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self.service)
        if self.rename:
            for old, new in _ECS_RENAMES.items():
                if old in event_dict:
                    event_dict[new] = event_dict.pop(old)
        return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "resilient",
) -> None:
    """Configure structlog for the host process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when true, console output when false,
            auto-detect from the tty when None
        service: Value of ``service.name`` on every event
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _ECSFields(service, rename=json_format),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: ResilienceSettings, service: str = "resilient") -> None:
    """Apply ``RESILIENT_LOG_LEVEL`` / ``RESILIENT_LOG_JSON`` from settings."""
    configure_logging(level=settings.log_level, json_format=settings.log_json, service=service)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


__all__ = ["configure_from_settings", "configure_logging", "get_logger"]
