"""Circuit breaker pattern for fault tolerance.

Stops calling a failing dependency for a cool-down window after repeated
failures, so callers fail fast instead of piling up futile requests.

States:
    CLOSED: Normal operation, calls pass through
    OPEN: Failing fast, calls rejected with CircuitOpenError
    HALF_OPEN: One trial call admitted to test recovery

Transitions::

    CLOSED ──failures >= threshold──► OPEN
    OPEN ──now - last_failure > recovery_timeout──► HALF_OPEN
    HALF_OPEN ──trial succeeds──► CLOSED (failures = 0)
    HALF_OPEN ──trial fails─────► OPEN   (new last_failure_time)

The breaker is independent of ``RetryExecutor``. Construct one per protected
dependency at the call site that owns it and pass it around; there is no
module-level default instance. Retries inside or outside the breaker are the
integrator's choice.

Example:
    >>> breaker = CircuitBreaker(name="summaries-api", failure_threshold=5)
    >>> summary = await breaker.execute(lambda: api.get_summary(summary_id))

    Deterministic tests inject a clock:

    >>> now = [0.0]
    >>> breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=30, clock=lambda: now[0])
"""

from __future__ import annotations

import inspect
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from resilient.core.errors import CircuitOpenError
from resilient.core.logging import get_logger
from resilient.core.settings import ResilienceSettings

logger = get_logger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"        # Normal operation
    OPEN = "OPEN"            # Rejecting calls
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a breaker's state.

    ``last_failure_time`` is a reading of the breaker's clock, or 0 if the
    breaker has never failed.
    """

    state: CircuitState
    failures: int
    last_failure_time: float


@dataclass
class CircuitStats:
    """Statistics for circuit breaker monitoring."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rejected_requests: int = 0
    state_changes: int = 0
    last_failure_time: datetime | None = None
    last_success_time: datetime | None = None
    last_state_change: datetime | None = None

    @property
    def failure_rate(self) -> float:
        """Calculate failure rate as percentage."""
        total = self.successful_requests + self.failed_requests
        if total == 0:
            return 0.0
        return (self.failed_requests / total) * 100


@dataclass
class CircuitBreaker:
    """Three-state guard around one remote dependency.

    Attributes:
        failure_threshold: Consecutive failures before opening
        recovery_timeout: Seconds an open circuit waits before a trial call
        name: Identifier used in logs and rejection errors
        clock: Monotonic time source in seconds (injectable for tests)
    """

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    name: str = "default"
    clock: Callable[[], float] = time.monotonic

    # Internal state
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failures: int = field(default=0, init=False)
    _last_failure_time: float = field(default=0, init=False)
    _trial_in_flight: bool = field(default=False, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    _stats: CircuitStats = field(default_factory=CircuitStats, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {self.failure_threshold}")
        if self.recovery_timeout < 0:
            raise ValueError(f"recovery_timeout must be >= 0, got {self.recovery_timeout}")

    @classmethod
    def from_settings(cls, settings: ResilienceSettings, **kwargs: Any) -> CircuitBreaker:
        kwargs.setdefault("failure_threshold", settings.breaker_failure_threshold)
        kwargs.setdefault("recovery_timeout", settings.breaker_recovery_timeout)
        return cls(**kwargs)

    @property
    def state(self) -> CircuitState:
        """Current state. Reading it never triggers a transition."""
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def stats(self) -> CircuitStats:
        """Get circuit statistics."""
        return self._stats

    def get_state(self) -> CircuitSnapshot:
        with self._lock:
            return CircuitSnapshot(self._state, self._failures, self._last_failure_time)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        self._stats.state_changes += 1
        self._stats.last_state_change = utcnow()
        logger.info(
            "circuit_state_changed",
            circuit=self.name,
            from_state=old_state.value,
            to_state=new_state.value,
            failures=self._failures,
        )

    def _admit(self) -> None:
        """Admit a call or raise CircuitOpenError."""
        with self._lock:
            self._stats.total_requests += 1

            if self._state == CircuitState.OPEN:
                if self.clock() - self._last_failure_time > self.recovery_timeout:
                    self._transition_to(CircuitState.HALF_OPEN)
                else:
                    self._reject()

            if self._state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    self._reject()
                self._trial_in_flight = True

    def _reject(self) -> None:
        self._stats.rejected_requests += 1
        logger.debug("circuit_rejected", circuit=self.name, state=self._state.value)
        raise CircuitOpenError(circuit=self.name)

    def record_success(self) -> None:
        """Record a successful call."""
        with self._lock:
            self._stats.successful_requests += 1
            self._stats.last_success_time = utcnow()
            self._trial_in_flight = False
            self._failures = 0
            self._transition_to(CircuitState.CLOSED)

    def record_failure(self, error: BaseException | None = None) -> None:
        """Record a failed call."""
        with self._lock:
            self._failures += 1
            self._last_failure_time = self.clock()
            self._stats.failed_requests += 1
            self._stats.last_failure_time = utcnow()

            if self._state == CircuitState.HALF_OPEN:
                self._trial_in_flight = False
                self._transition_to(CircuitState.OPEN)
            elif self._failures >= self.failure_threshold:
                self._transition_to(CircuitState.OPEN)

            logger.debug(
                "circuit_failure_recorded",
                circuit=self.name,
                failures=self._failures,
                error=repr(error) if error is not None else None,
            )

    def reset(self) -> None:
        """Reset circuit to closed state."""
        with self._lock:
            self._failures = 0
            self._last_failure_time = 0
            self._trial_in_flight = False
            self._transition_to(CircuitState.CLOSED)

    async def execute(self, operation: Callable[[], Awaitable[T]] | Callable[[], T]) -> T:
        """Run ``operation`` through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open (operation not attempted)
            Exception: Whatever the operation raised, unchanged
        """
        self._admit()
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self.record_failure(e)
            raise
        except BaseException:
            self._release_trial()
            raise
        self.record_success()
        return result

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute a synchronous function through the circuit breaker."""
        self._admit()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self.record_failure(e)
            raise
        except BaseException:
            self._release_trial()
            raise
        self.record_success()
        return result

    def _release_trial(self) -> None:
        # Cancellation is neither success nor failure; free the trial slot.
        with self._lock:
            self._trial_in_flight = False


class CircuitBreakerRegistry:
    """Registry of named circuit breakers, one per protected dependency.

    Construct it explicitly where the dependencies are wired up; nothing in
    this package keeps a global instance.
    """

    def __init__(self, defaults: ResilienceSettings | None = None):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.RLock()
        self._defaults = defaults

    def get(self, name: str) -> CircuitBreaker | None:
        """Get a circuit breaker by name, returns None if not found."""
        with self._lock:
            return self._breakers.get(name)

    def get_or_create(self, name: str, **kwargs: Any) -> CircuitBreaker:
        """Get or create a circuit breaker by name."""
        with self._lock:
            if name not in self._breakers:
                if self._defaults is not None:
                    breaker = CircuitBreaker.from_settings(self._defaults, name=name, **kwargs)
                else:
                    breaker = CircuitBreaker(name=name, **kwargs)
                self._breakers[name] = breaker
            return self._breakers[name]

    def names(self) -> list[str]:
        """List all registered circuit breaker names."""
        with self._lock:
            return list(self._breakers.keys())

    def snapshot(self) -> dict[str, CircuitSnapshot]:
        with self._lock:
            return {name: breaker.get_state() for name, breaker in self._breakers.items()}

    def reset_all(self) -> None:
        """Reset all circuit breakers."""
        with self._lock:
            for breaker in self._breakers.values():
                breaker.reset()


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitSnapshot",
    "CircuitState",
    "CircuitStats",
]
