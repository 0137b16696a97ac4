"""Retrying request executor with exponential backoff.

Wraps an argument-less operation, classifies every failure into the
TypedError taxonomy and retries only what is worth retrying:

- NETWORK_ERROR, SERVER_ERROR and UNKNOWN_ERROR (any TypedError flagged
  ``retryable``) wait ``initial_delay * backoff_multiplier ** (attempt - 1)``
  and try again
- VALIDATION / AUTH / AUTHORIZATION / NOT_FOUND / RATE_LIMIT, unmapped 4xx
  responses and open circuits abort on first occurrence
- after ``max_attempts + 1`` tries the last classified error is raised

Per-call state machine::

    ATTEMPTING ──success──────────────────────────► DONE
        │
        ├──retryable failure, attempts remain──► WAITING ──► ATTEMPTING
        │
        └──non-retryable failure | exhausted────► FAILED

Toasts, logging and error reporting are injected capabilities gated by
``RetryConfig`` flags that are all off by default.

Example:
    >>> from resilient.execution.retry import RetryConfig, RetryExecutor
    >>>
    >>> executor = RetryExecutor(RetryConfig(max_attempts=3, initial_delay=0.5))
    >>> summary = await executor.execute(lambda: api.get_summary(summary_id))
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import inspect
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from resilient.core.classify import classify
from resilient.core.errors import TypedError
from resilient.core.logging import get_logger
from resilient.core.messages import friendly_message
from resilient.core.settings import ResilienceSettings
from resilient.execution.hooks import Notifier, Reporter, log_notifier, log_reporter, make_log_reporter

logger = get_logger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _request_scope(request_id: str | None) -> Any:
    """Bind ``request_id`` into the log context for the duration of a call."""
    if request_id is None:
        return structlog.contextvars.bound_contextvars()
    return structlog.contextvars.bound_contextvars(request_id=request_id)


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy for one call.

    Attributes:
        max_attempts: Extra attempts after the first try (3 -> 4 tries total)
        initial_delay: Seconds to wait before the first retry
        backoff_multiplier: Factor applied to the delay after each retry
        max_delay: Optional cap on any single delay
        show_toast: Send user-facing progress/failure text to the notifier
        log_errors: Log every failed attempt
        report_errors: Send the final failure to the reporter
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float | None = None
    show_toast: bool = False
    log_errors: bool = False
    report_errors: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if self.initial_delay < 0:
            raise ValueError(f"initial_delay must be >= 0, got {self.initial_delay}")
        if self.backoff_multiplier <= 0:
            raise ValueError(
                f"backoff_multiplier must be > 0, got {self.backoff_multiplier}"
            )

    @property
    def total_attempts(self) -> int:
        """Tries including the first one."""
        return self.max_attempts + 1

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failed try (1-based)."""
        delay = self.initial_delay * (self.backoff_multiplier ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def replace(self, **overrides: Any) -> RetryConfig:
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_settings(cls, settings: ResilienceSettings, **overrides: Any) -> RetryConfig:
        values: dict[str, Any] = {
            "max_attempts": settings.retry_max_attempts,
            "initial_delay": settings.retry_initial_delay,
            "backoff_multiplier": settings.retry_backoff_multiplier,
            "max_delay": settings.retry_max_delay,
            "report_errors": settings.report_errors,
        }
        values.update(overrides)
        return cls(**values)


class RetryPhase(str, Enum):
    """Per-call retry states."""

    ATTEMPTING = "attempting"
    WAITING = "waiting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RetryContext:
    """State of one ``execute`` call. Never shared between calls."""

    config: RetryConfig
    request_id: str | None = None
    phase: RetryPhase = field(default=RetryPhase.ATTEMPTING, init=False)
    attempt: int = field(default=0, init=False)
    last_error: TypedError | None = field(default=None, init=False)
    started_at: datetime = field(default_factory=utcnow, init=False)
    errors: list[tuple[int, TypedError, datetime]] = field(default_factory=list, init=False)
    delays: list[float] = field(default_factory=list, init=False)

    def begin_attempt(self) -> None:
        self.attempt += 1
        self.phase = RetryPhase.ATTEMPTING

    def record_failure(self, error: TypedError) -> None:
        self.errors.append((self.attempt, error, utcnow()))
        self.last_error = error

    def should_retry(self, error: TypedError) -> bool:
        return error.retryable and self.attempt < self.config.total_attempts

    @property
    def elapsed_seconds(self) -> float:
        """Total elapsed time since the call started."""
        return (utcnow() - self.started_at).total_seconds()


@dataclass
class RetryExecutor:
    """Runs operations under a RetryConfig.

    Holds no per-call state, so one instance may be shared freely.

    Attributes:
        config: Default policy; ``execute`` accepts a per-call override
        notifier: Receives user-safe text when ``show_toast`` is on
            (defaults to a log-backed notifier)
        reporter: Receives the final TypedError when ``report_errors`` is on
            (defaults to a log-backed reporter)
        on_retry: Called as ``(attempt, error, delay)`` before each wait
        sleep: Awaitable delay used by ``execute``
        sync_sleep: Blocking delay used by ``execute_sync``
    """

    config: RetryConfig = field(default_factory=RetryConfig)
    notifier: Notifier | None = None
    reporter: Reporter | None = None
    on_retry: Callable[[int, TypedError, float], None] | None = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    sync_sleep: Callable[[float], Any] = time.sleep

    @classmethod
    def from_settings(cls, settings: ResilienceSettings, **kwargs: Any) -> RetryExecutor:
        kwargs.setdefault("reporter", make_log_reporter(debug=settings.debug))
        return cls(config=RetryConfig.from_settings(settings), **kwargs)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]] | Callable[[], T],
        config: RetryConfig | None = None,
        *,
        request_id: str | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or the policy gives up.

        Raises:
            TypedError: The classified error of the last failed attempt
        """
        ctx = RetryContext(config or self.config, request_id=request_id)
        with _request_scope(request_id):
            while True:
                ctx.begin_attempt()
                try:
                    result = operation()
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as exc:
                    delay = self._on_failure(ctx, exc)
                    if delay is None:
                        raise ctx.last_error
                    await self.sleep(delay)
                    continue
                self._on_success(ctx)
                return result

    def execute_sync(
        self,
        operation: Callable[[], T],
        config: RetryConfig | None = None,
        *,
        request_id: str | None = None,
    ) -> T:
        """Blocking twin of ``execute`` for synchronous operations."""
        ctx = RetryContext(config or self.config, request_id=request_id)
        with _request_scope(request_id):
            while True:
                ctx.begin_attempt()
                try:
                    result = operation()
                except Exception as exc:
                    delay = self._on_failure(ctx, exc)
                    if delay is None:
                        raise ctx.last_error
                    self.sync_sleep(delay)
                    continue
                self._on_success(ctx)
                return result

    # ------------------------------------------------------------------

    def _on_failure(self, ctx: RetryContext, exc: Exception) -> float | None:
        """Classify a failure and return the delay before the next try.

        ``None`` means the call is FAILED and ``ctx.last_error`` must be raised.
        """
        config = ctx.config
        error = classify(exc, request_id=ctx.request_id)
        ctx.record_failure(error)

        if config.log_errors:
            logger.warning(
                "attempt_failed",
                attempt=ctx.attempt,
                total_attempts=config.total_attempts,
                error=error.to_dict(),
            )

        if not ctx.should_retry(error):
            ctx.phase = RetryPhase.FAILED
            self._on_final_failure(ctx, error)
            return None

        ctx.phase = RetryPhase.WAITING
        delay = config.delay_for(ctx.attempt)
        ctx.delays.append(delay)

        if config.show_toast:
            prefix = (
                "Connection issue detected. Retrying..."
                if ctx.attempt == 1
                else "Retrying connection..."
            )
            self._notify(f"{prefix} Attempt {ctx.attempt + 1} of {config.total_attempts}")
        if config.log_errors:
            logger.info("retry_scheduled", attempt=ctx.attempt + 1, delay=delay)
        if self.on_retry is not None:
            self.on_retry(ctx.attempt, error, delay)
        return delay

    def _on_success(self, ctx: RetryContext) -> None:
        ctx.phase = RetryPhase.DONE
        if ctx.attempt > 1:
            if ctx.config.show_toast:
                self._notify("Connection restored. Your request was completed successfully.")
            if ctx.config.log_errors:
                logger.info(
                    "retry_succeeded",
                    attempts=ctx.attempt,
                    elapsed_seconds=ctx.elapsed_seconds,
                )

    def _on_final_failure(self, ctx: RetryContext, error: TypedError) -> None:
        config = ctx.config
        if config.show_toast:
            self._notify(friendly_message(error))
        if config.log_errors:
            logger.error(
                "retries_exhausted" if error.retryable else "non_retryable_failure",
                attempts=ctx.attempt,
                error=error.to_dict(),
            )
        if config.report_errors:
            reporter = self.reporter or log_reporter
            reporter(
                error,
                {
                    "attempts": ctx.attempt,
                    "elapsed_seconds": ctx.elapsed_seconds,
                    "request_id": ctx.request_id,
                },
            )

    def _notify(self, message: str) -> None:
        (self.notifier or log_notifier)(message)


def with_retry(
    config: RetryConfig | None = None,
    *,
    executor: RetryExecutor | None = None,
    **overrides: Any,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator factory adding retry logic to a sync or async function.

    Args:
        config: Retry policy (default: ``RetryConfig()``)
        executor: Executor carrying hooks; a plain one is created if omitted
        **overrides: Field overrides applied on top of ``config``

    Example:
        >>> @with_retry(max_attempts=2, initial_delay=0.2)
        ... async def fetch_summary(summary_id: str) -> dict:
        ...     return await api.get(f"/summaries/{summary_id}")
    """
    runner = executor or RetryExecutor()
    policy = config or runner.config
    if overrides:
        policy = policy.replace(**overrides)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                return await runner.execute(lambda: func(*args, **kwargs), policy)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            return runner.execute_sync(lambda: func(*args, **kwargs), policy)

        return sync_wrapper

    return decorator


async def retry_call(
    operation: Callable[[], Awaitable[T]],
    *,
    request_id: str | None = None,
    **overrides: Any,
) -> T:
    """One-shot helper: ``await retry_call(op, max_attempts=2)``."""
    return await RetryExecutor(config=RetryConfig(**overrides)).execute(
        operation, request_id=request_id
    )


__all__ = [
    "RetryConfig",
    "RetryContext",
    "RetryExecutor",
    "RetryPhase",
    "retry_call",
    "with_retry",
]
