"""User-safe messages for each error code.

Raw exception text and HTTP reason phrases can leak internals, so nothing
rendered to an end user is ever derived from ``TypedError.message``. Each code
maps to one fixed sentence; anything unrecognized gets the UNKNOWN_ERROR
sentence.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from resilient.core.errors import ErrorCode, TypedError

FRIENDLY_MESSAGES: Mapping[ErrorCode, str] = MappingProxyType(
    {
        ErrorCode.NETWORK: (
            "Unable to connect to the server. Please check your internet connection and try again."
        ),
        ErrorCode.VALIDATION: "Please check your input and try again.",
        ErrorCode.AUTHENTICATION: "Please log in to continue.",
        ErrorCode.AUTHORIZATION: "You don't have permission to perform this action.",
        ErrorCode.NOT_FOUND: "The requested resource could not be found.",
        ErrorCode.RATE_LIMIT: (
            "You're making requests too quickly. Please wait a moment and try again."
        ),
        ErrorCode.SERVER: "We're experiencing technical difficulties. Please try again later.",
        ErrorCode.UNKNOWN: "Something unexpected happened. Please try again.",
        ErrorCode.HTTP: "There was a problem with your request.",
    }
)


def friendly_message(error: TypedError | ErrorCode | str) -> str:
    """Return the fixed user-facing sentence for an error or a code.

    >>> friendly_message(TypedError.authentication())
    'Please log in to continue.'
    >>> friendly_message("NOT_A_CODE")
    'Something unexpected happened. Please try again.'
    """
    code = error.code if isinstance(error, TypedError) else error
    try:
        return FRIENDLY_MESSAGES[ErrorCode(code)]
    except ValueError:
        return FRIENDLY_MESSAGES[ErrorCode.UNKNOWN]


__all__ = ["FRIENDLY_MESSAGES", "friendly_message"]
