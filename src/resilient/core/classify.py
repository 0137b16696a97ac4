"""Classify arbitrary failures into the TypedError taxonomy.

``classify`` accepts whatever an operation raised or rejected with: a
TypedError, a plain exception, an HTTP-client style error carrying a
``response`` and/or ``request``, a bare string, or any other value. The rules
are checked in priority order and the first match wins:

1. TypedError                           -> returned unchanged
2. ConnectionError, TimeoutError, or an
   exception mentioning fetch/network   -> NETWORK_ERROR
3. Exception mentioning validation/invalid -> VALIDATION_ERROR
4. ``response.status`` 401/403/404/5xx  -> AUTH / AUTH / VALIDATION / SERVER
5. ``request`` without ``response``     -> NETWORK_ERROR
6. str                                  -> UNKNOWN_ERROR (string as message)
7. anything else                        -> UNKNOWN_ERROR

UNKNOWN_ERROR is retryable unless the value carried a 4xx response status.

404 maps into the validation family here, while ``TypedError.not_found``
builds a dedicated NOT_FOUND record. Both mappings are kept.

Example:
    >>> classify({"response": {"status": 403}}).message
    'Access denied'
    >>> classify(ConnectionError("network is unreachable")).code
    <ErrorCode.NETWORK: 'NETWORK_ERROR'>
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable

from resilient.core.errors import TypedError, read_field
from resilient.core.logging import get_logger

logger = get_logger(__name__)

_NETWORK_MARKERS = ("fetch", "network")
_VALIDATION_MARKERS = ("validation", "invalid")
_TRANSPORT_ERRORS = (ConnectionError, TimeoutError)


def _message_of(exc: BaseException) -> str:
    # OSError(errno, strerror) keeps the readable text in strerror
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc.args[0]) if exc.args else str(exc)


def _mentions(text: str, markers: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def _response_details(response: Any) -> dict[str, Any]:
    return {
        "status": read_field(response, "status", "status_code"),
        "status_text": read_field(response, "status_text", "statusText"),
        "url": read_field(response, "url"),
    }


def _response_message(response: Any) -> str | None:
    """Server-supplied message, then the reason phrase."""
    data = read_field(response, "data")
    if data is not None:
        message = read_field(data, "message")
        if message:
            return str(message)
    status_text = read_field(response, "status_text", "statusText")
    return str(status_text) if status_text else None


def _classify_response(response: Any, thrown: Any) -> TypedError | None:
    status = read_field(response, "status", "status_code")
    if not isinstance(status, int):
        return None
    details = _response_details(response)
    cause = thrown if isinstance(thrown, BaseException) else None

    if status == 401:
        return TypedError.authentication(details=details, cause=cause)
    if status == 403:
        return TypedError.authentication("Access denied", status_code=403, details=details, cause=cause)
    if status == 404:
        return TypedError.validation("Resource not found", status_code=404, details=details, cause=cause)
    if 500 <= status <= 599:
        return TypedError.server(
            _response_message(response), status_code=status, details=details, cause=cause
        )
    return None


def _is_client_status(response: Any) -> bool:
    status = read_field(response, "status", "status_code")
    return isinstance(status, int) and 400 <= status <= 499


def classify(thrown: Any, *, request_id: str | None = None) -> TypedError:
    """Map any thrown value onto exactly one TypedError.

    Args:
        thrown: The raised exception or rejected value
        request_id: Correlation id attached to newly built records

    Returns:
        ``thrown`` itself when it already is a TypedError, else a new record
    """
    if isinstance(thrown, TypedError):
        return thrown.with_request_id(request_id)

    if isinstance(thrown, BaseException):
        message = _message_of(thrown)
        if isinstance(thrown, _TRANSPORT_ERRORS) or _mentions(message, _NETWORK_MARKERS):
            return TypedError.network(message, cause=thrown, request_id=request_id)
        if _mentions(message, _VALIDATION_MARKERS):
            return TypedError.validation(message, cause=thrown, request_id=request_id)

    response = read_field(thrown, "response") if thrown is not None else None
    client_status = False
    if response is not None:
        error = _classify_response(response, thrown)
        if error is not None:
            return error.with_request_id(request_id)
        client_status = _is_client_status(response)
    elif thrown is not None and read_field(thrown, "request") is not None:
        return TypedError.network(
            "Unable to connect to the server",
            cause=thrown if isinstance(thrown, BaseException) else None,
            request_id=request_id,
        )

    if isinstance(thrown, str):
        return TypedError.unknown(thrown, request_id=request_id)

    # Unmapped 4xx responses stay UNKNOWN_ERROR but are client-caused.
    retryable = False if client_status else None

    if isinstance(thrown, BaseException):
        return TypedError.unknown(
            _message_of(thrown), cause=thrown, request_id=request_id, retryable=retryable
        )

    return TypedError.unknown(details=thrown, request_id=request_id, retryable=retryable)


def is_retryable(thrown: Any) -> bool:
    """Classify ``thrown`` and report whether a retry is worthwhile."""
    return classify(thrown).retryable


def with_error_handling(
    func: Callable[..., Any],
    error_handler: Callable[[BaseException], None] | None = None,
) -> Callable[..., Any]:
    """Wrap ``func`` so every failure reaches ``error_handler`` before propagating.

    Works for sync and async functions. Without a handler the failure is
    logged. The original exception is always re-raised unchanged.

    Example:
        >>> fetch = with_error_handling(client.fetch_summary, on_error)
        >>> await fetch(summary_id)
    """

    def _handle(exc: BaseException) -> None:
        if error_handler is not None:
            error_handler(exc)
        else:
            typed = classify(exc)
            logger.error(
                "unhandled_error",
                function=getattr(func, "__qualname__", repr(func)),
                error=typed.to_dict(),
            )

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except Exception as exc:
                _handle(exc)
                raise

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            _handle(exc)
            raise

    return sync_wrapper


__all__ = [
    "classify",
    "is_retryable",
    "with_error_handling",
]
