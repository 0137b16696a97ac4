"""
Typed error taxonomy for the resilience layer.

Every failure that passes through the retry executor, the circuit breaker, or
an error-handling wrapper is normalized into a single ``TypedError`` record.
The record is a tagged variant keyed by ``ErrorCode``: the code decides the
default HTTP-like status, the default message and whether the failure is
worth retrying. All three live in one static table (``_CODE_DEFAULTS``)
rather than in a tree of subclasses, so classification stays a pure function
over data.

Manifesto:
    - **Closed taxonomy:** A small fixed set of codes consumers may branch on
    - **Code drives defaults:** Status, message and retry semantics come from
      one lookup table
    - **Error chaining:** The original exception is preserved as ``cause``
    - **Serialization-ready:** ``to_dict()`` for structured logging/reporting

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────────┐
        │                         TypedError                             │
        │  (code, message, status_code, details, timestamp, request_id)  │
        ├───────────────────────────────────────────────────────────────┤
        │  Transient (retryable)   │  Client-caused (not retryable)      │
        │  ─────────────────────   │  ──────────────────────────────     │
        │  NETWORK_ERROR   0       │  VALIDATION_ERROR     400           │
        │  SERVER_ERROR    500     │  AUTH_ERROR           401           │
        │  UNKNOWN_ERROR   500     │  AUTHORIZATION_ERROR  403           │
        │                          │  NOT_FOUND            404           │
        │                          │  RATE_LIMIT           429           │
        ├───────────────────────────────────────────────────────────────┤
        │  HTTPError: response status, retryable only for 5xx           │
        └───────────────────────────────────────────────────────────────┘

Examples:
    >>> error = TypedError.network()
    >>> error.code, error.status_code, error.retryable
    (<ErrorCode.NETWORK: 'NETWORK_ERROR'>, 0, True)

    >>> TypedError.not_found("Summary").message
    'Summary not found'

    >>> try:
    ...     raise ConnectionResetError("peer reset")
    ... except ConnectionResetError as e:
    ...     error = TypedError.network(cause=e)
    >>> error.__cause__
    ConnectionResetError('peer reset')

Guardrails:
    ❌ DON'T: Show ``error.message`` to end users
    ✅ DO: Render ``friendly_message(error)`` instead

    ❌ DON'T: Subclass TypedError per code
    ✅ DO: Use the code-specific constructors (``TypedError.server(...)``)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class ErrorCode(str, Enum):
    """Stable error codes. Values are part of the public contract."""

    NETWORK = "NETWORK_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTH_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMIT = "RATE_LIMIT"
    SERVER = "SERVER_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"
    HTTP = "HTTPError"


@dataclass(frozen=True)
class CodeDefaults:
    """Per-code defaults applied when a TypedError does not override them."""

    status_code: int
    message: str
    retryable: bool


_CODE_DEFAULTS: dict[ErrorCode, CodeDefaults] = {
    ErrorCode.NETWORK: CodeDefaults(0, "Network connection failed", True),
    ErrorCode.VALIDATION: CodeDefaults(400, "Invalid input", False),
    ErrorCode.AUTHENTICATION: CodeDefaults(401, "Authentication required", False),
    ErrorCode.AUTHORIZATION: CodeDefaults(403, "Insufficient permissions", False),
    ErrorCode.NOT_FOUND: CodeDefaults(404, "Resource not found", False),
    ErrorCode.RATE_LIMIT: CodeDefaults(429, "Rate limit exceeded", False),
    ErrorCode.SERVER: CodeDefaults(500, "Internal server error", True),
    ErrorCode.UNKNOWN: CodeDefaults(500, "An unknown error occurred", True),
    ErrorCode.HTTP: CodeDefaults(500, "Request failed", False),
}


def code_defaults(code: ErrorCode | str) -> CodeDefaults:
    """Look up the defaults for a code. Unrecognized codes get UNKNOWN's."""
    try:
        return _CODE_DEFAULTS[ErrorCode(code)]
    except ValueError:
        return _CODE_DEFAULTS[ErrorCode.UNKNOWN]


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class TypedError(Exception):
    """
    Canonical error record produced by the resilience layer.

    A TypedError has exactly one ``code``. ``status_code``, ``message`` and
    ``retryable`` default to the code's table entry and may be overridden per
    instance (the circuit breaker's rejection, for example, is a SERVER_ERROR
    that is not retryable).

    Attributes:
        code: ErrorCode tag
        message: Developer-facing description (not end-user safe)
        status_code: HTTP-like status, 0 for transport failures
        details: Structured payload captured from the original failure
        timestamp: ISO-8601 creation time
        request_id: Correlation id threaded from the originating call
        retryable: Whether a retry has a reasonable chance of succeeding
        cause: Wrapped original exception, also set as ``__cause__``
    """

    def __init__(
        self,
        message: str | None = None,
        code: ErrorCode | str = ErrorCode.UNKNOWN,
        *,
        status_code: int | None = None,
        details: Any = None,
        request_id: str | None = None,
        retryable: bool | None = None,
        cause: BaseException | None = None,
    ):
        try:
            self.code = ErrorCode(code)
        except ValueError:
            raise ValueError(f"Unknown error code: {code!r}") from None
        defaults = _CODE_DEFAULTS[self.code]
        self.message = message if message is not None else defaults.message
        super().__init__(self.message)
        self.status_code = status_code if status_code is not None else defaults.status_code
        self.details = details
        self.request_id = request_id
        self.retryable = retryable if retryable is not None else defaults.retryable
        self.timestamp = utcnow_iso()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    # ------------------------------------------------------------------
    # Code-specific constructors
    # ------------------------------------------------------------------

    @classmethod
    def network(cls, message: str | None = None, **kwargs: Any) -> TypedError:
        return cls(message, ErrorCode.NETWORK, **kwargs)

    @classmethod
    def validation(cls, message: str | None = None, **kwargs: Any) -> TypedError:
        return cls(message, ErrorCode.VALIDATION, **kwargs)

    @classmethod
    def authentication(cls, message: str | None = None, **kwargs: Any) -> TypedError:
        return cls(message, ErrorCode.AUTHENTICATION, **kwargs)

    @classmethod
    def authorization(cls, message: str | None = None, **kwargs: Any) -> TypedError:
        return cls(message, ErrorCode.AUTHORIZATION, **kwargs)

    @classmethod
    def not_found(cls, resource: str = "Resource", **kwargs: Any) -> TypedError:
        return cls(f"{resource} not found", ErrorCode.NOT_FOUND, **kwargs)

    @classmethod
    def rate_limit(cls, message: str | None = None, **kwargs: Any) -> TypedError:
        return cls(message, ErrorCode.RATE_LIMIT, **kwargs)

    @classmethod
    def server(cls, message: str | None = None, **kwargs: Any) -> TypedError:
        return cls(message, ErrorCode.SERVER, **kwargs)

    @classmethod
    def unknown(cls, message: str | None = None, **kwargs: Any) -> TypedError:
        return cls(message, ErrorCode.UNKNOWN, **kwargs)

    @classmethod
    def from_response(cls, response: Any, **kwargs: Any) -> TypedError:
        """
        Build an ``HTTPError`` record from an HTTP-like response.

        The response may be an object with ``status``/``status_text``/``url``
        attributes or a mapping with the same keys (``statusText`` is also
        accepted). The message falls back to ``"HTTP <status>"``.
        """
        status = read_field(response, "status")
        status_text = read_field(response, "status_text", "statusText")
        details = {
            "status": status,
            "status_text": status_text,
            "url": read_field(response, "url"),
        }
        message = status_text or (f"HTTP {status}" if status is not None else None)
        kwargs.setdefault("status_code", status if isinstance(status, int) else None)
        kwargs.setdefault("details", details)
        kwargs.setdefault("retryable", isinstance(status, int) and status >= 500)
        return cls(message, ErrorCode.HTTP, **kwargs)

    # ------------------------------------------------------------------

    def with_request_id(self, request_id: str | None) -> TypedError:
        """Attach a correlation id unless one is already set (fluent)."""
        if request_id is not None and self.request_id is None:
            self.request_id = request_id
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "timestamp": self.timestamp,
        }
        if self.details is not None:
            result["details"] = self.details
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        return result

    def __repr__(self) -> str:
        return f"TypedError({self.message!r}, code={self.code.value}, status={self.status_code})"


class CircuitOpenError(TypedError):
    """Raised when a circuit breaker rejects a call without running it.

    Server-class by code, but never retryable.
    """

    def __init__(self, message: str = "Service temporarily unavailable", *, circuit: str = "default"):
        super().__init__(
            message,
            ErrorCode.SERVER,
            retryable=False,
            details={"circuit": circuit},
        )
        self.circuit = circuit


def read_field(obj: Any, *names: str) -> Any:
    """Read the first present attribute or mapping key among ``names``."""
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    return None


__all__ = [
    "ErrorCode",
    "CodeDefaults",
    "code_defaults",
    "TypedError",
    "CircuitOpenError",
    "utcnow_iso",
    "read_field",
]
