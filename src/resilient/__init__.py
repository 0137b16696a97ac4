"""
Resilient - client-side resilience layer.

Four pieces, usable independently:

- resilient.core: TypedError taxonomy, classify(), friendly messages
- resilient.execution: RetryExecutor and CircuitBreaker wrappers
- resilient.validation: FormValidator rule engine
"""

__version__ = "0.1.0"

from resilient.core.classify import classify, is_retryable, with_error_handling
from resilient.core.errors import CircuitOpenError, ErrorCode, TypedError
from resilient.core.logging import configure_from_settings, configure_logging, get_logger
from resilient.core.messages import friendly_message
from resilient.core.settings import ResilienceSettings
from resilient.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
)
from resilient.execution.retry import RetryConfig, RetryExecutor, retry_call, with_retry
from resilient.validation.rules import FieldError, ValidationRule
from resilient.validation.validator import FormValidator

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitOpenError",
    "CircuitState",
    "ErrorCode",
    "FieldError",
    "FormValidator",
    "ResilienceSettings",
    "RetryConfig",
    "RetryExecutor",
    "TypedError",
    "ValidationRule",
    "classify",
    "configure_from_settings",
    "configure_logging",
    "friendly_message",
    "get_logger",
    "is_retryable",
    "retry_call",
    "with_error_handling",
    "with_retry",
]
