"""Resilient Execution -- wrappers that run caller-supplied operations.

Resilience layer
  ├── RetryExecutor   ─ classified retries with exponential backoff
  ├── CircuitBreaker  ─ fail-fast during a cool-down window
  └── hooks           ─ injectable notifier / reporter capabilities

RetryExecutor and CircuitBreaker are independent decorators around the same
operation type (a zero-argument callable returning an awaitable). Neither
composes the other.
"""

from resilient.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitSnapshot,
    CircuitState,
    CircuitStats,
)
from resilient.execution.hooks import build_report, log_notifier, log_reporter, make_log_reporter
from resilient.execution.retry import (
    RetryConfig,
    RetryContext,
    RetryExecutor,
    RetryPhase,
    retry_call,
    with_retry,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitSnapshot",
    "CircuitState",
    "CircuitStats",
    "RetryConfig",
    "RetryContext",
    "RetryExecutor",
    "RetryPhase",
    "build_report",
    "log_notifier",
    "log_reporter",
    "make_log_reporter",
    "retry_call",
    "with_retry",
]
