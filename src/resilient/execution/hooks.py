"""Side-effect capabilities injected into the retry path.

Toasts, console logging and external error reporting are optional
capabilities, never hard dependencies. ``RetryExecutor`` only calls them when
the matching ``RetryConfig`` flag is on, so the retry/backoff logic is
testable without any UI or network side effects.

- ``Notifier``: ``(message: str) -> None``. Receives user-safe text only.
- ``Reporter``: ``(error: TypedError, context: dict) -> None``. Receives
  developer detail; tracebacks are included only when ``debug`` is set.
"""

from __future__ import annotations

import traceback
from typing import Any, Callable, Protocol

from resilient.core.errors import TypedError
from resilient.core.logging import get_logger

logger = get_logger(__name__)

Notifier = Callable[[str], None]


class Reporter(Protocol):
    def __call__(self, error: TypedError, context: dict[str, Any]) -> None: ...


def log_notifier(message: str) -> None:
    """Default notifier: emits the user-facing text as a log event."""
    logger.info("user_notification", message=message)


def build_report(
    error: TypedError, context: dict[str, Any] | None = None, *, debug: bool = False
) -> dict[str, Any]:
    """Assemble the payload sent to an error tracker.

    Developer-facing detail (the traceback of the wrapped cause) is only
    attached when ``debug`` is true.
    """
    report = error.to_dict()
    if context:
        report["context"] = dict(context)
    if debug:
        source = error.cause if error.cause is not None else error
        report["traceback"] = "".join(
            traceback.format_exception(type(source), source, source.__traceback__)
        )
    return report


def make_log_reporter(*, debug: bool = False) -> Reporter:
    """Reporter that logs ``build_report`` output, with tracebacks when ``debug``."""

    def _report(error: TypedError, context: dict[str, Any]) -> None:
        logger.error("error_reported", report=build_report(error, context, debug=debug))

    return _report


log_reporter = make_log_reporter()


__all__ = [
    "Notifier",
    "Reporter",
    "build_report",
    "log_notifier",
    "log_reporter",
    "make_log_reporter",
]
