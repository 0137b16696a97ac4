"""Declarative per-field validation rules and the errors they produce."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable


class RuleType(str, Enum):
    """Names of the checks, in pipeline order."""

    REQUIRED = "required"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    PATTERN = "pattern"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ValidationRule:
    """Checks attached to one field. Any combination may be set.

    Attributes:
        required: Reject ``None`` and empty/whitespace-only strings
        min_length: Minimum length of ``str(value)``
        max_length: Maximum length of ``str(value)``
        pattern: Caller-supplied regex (compiled or string), must match
        email: Value must look like an email address
        phone: Value must look like a phone number
        url: Value must be an absolute URL
        custom: Predicate returning ``None`` (valid) or an error message
        message: Replaces the default message of every built-in check
    """

    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    pattern: re.Pattern[str] | str | None = None
    email: bool = False
    phone: bool = False
    url: bool = False
    custom: Callable[[Any], str | None] | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern))
        if self.min_length is not None and self.min_length < 0:
            raise ValueError(f"min_length must be >= 0, got {self.min_length}")
        if self.max_length is not None and self.max_length < 0:
            raise ValueError(f"max_length must be >= 0, got {self.max_length}")


@dataclass(frozen=True)
class FieldError:
    """First violated rule for a field."""

    field: str
    message: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


__all__ = ["FieldError", "RuleType", "ValidationRule"]
