"""Resilient Core -- error taxonomy, classification and ambient services.

Architecture::

    errors.py      TypedError record + ErrorCode table (tagged variant)
    classify.py    classify(), is_retryable(), with_error_handling()
    messages.py    Fixed user-safe sentence per ErrorCode
    logging.py     structlog configuration, get_logger()
    settings.py    ResilienceSettings (pydantic-settings, RESILIENT_ prefix)
"""

from resilient.core.classify import classify, is_retryable, with_error_handling
from resilient.core.errors import (
    CircuitOpenError,
    CodeDefaults,
    ErrorCode,
    TypedError,
    code_defaults,
)
from resilient.core.logging import configure_from_settings, configure_logging, get_logger
from resilient.core.messages import FRIENDLY_MESSAGES, friendly_message

__all__ = [
    "CircuitOpenError",
    "CodeDefaults",
    "ErrorCode",
    "FRIENDLY_MESSAGES",
    "TypedError",
    "classify",
    "code_defaults",
    "configure_from_settings",
    "configure_logging",
    "friendly_message",
    "get_logger",
    "is_retryable",
    "with_error_handling",
]
