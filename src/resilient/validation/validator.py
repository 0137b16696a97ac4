"""Rule engine validating a flat record of form fields.

Each field runs an ordered pipeline and reports only the first violation::

    required → minLength → maxLength → pattern → email → phone → url → custom

An empty value (``None`` or a blank string) fails ``required`` when set and
otherwise skips every remaining check, so optional fields may be left blank.

Example:
    >>> validator = FormValidator()
    >>> validator.add_rules({
    ...     "email": ValidationRule(required=True, email=True),
    ...     "password": ValidationRule(required=True, min_length=8),
    ... })
    >>> validator.validate_field("password", "123").message
    'password must be at least 8 characters'
    >>> validator.validate_form({"email": "a@b.co", "password": "hunter22"})
    {}
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from resilient.core.logging import get_logger
from resilient.validation.rules import FieldError, RuleType, ValidationRule

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-()]")
_URL_ADAPTER = TypeAdapter(AnyUrl)


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def is_email(text: str) -> bool:
    return EMAIL_PATTERN.fullmatch(text) is not None


def is_phone(text: str) -> bool:
    return PHONE_PATTERN.fullmatch(_PHONE_SEPARATORS.sub("", text)) is not None


def is_url(text: str) -> bool:
    try:
        _URL_ADAPTER.validate_python(text)
    except PydanticValidationError:
        return False
    return True


# (type, failed?, default message) for the string checks, in pipeline order.
_Check = Callable[[ValidationRule, str], bool]
_STRING_CHECKS: tuple[tuple[RuleType, _Check, Callable[[str, ValidationRule], str]], ...] = (
    (
        RuleType.MIN_LENGTH,
        lambda rule, text: rule.min_length is not None and len(text) < rule.min_length,
        lambda field, rule: f"{field} must be at least {rule.min_length} characters",
    ),
    (
        RuleType.MAX_LENGTH,
        lambda rule, text: rule.max_length is not None and len(text) > rule.max_length,
        lambda field, rule: f"{field} must be no more than {rule.max_length} characters",
    ),
    (
        RuleType.PATTERN,
        lambda rule, text: rule.pattern is not None and rule.pattern.search(text) is None,
        lambda field, rule: f"{field} format is invalid",
    ),
    (
        RuleType.EMAIL,
        lambda rule, text: rule.email and not is_email(text),
        lambda field, rule: "Please enter a valid email address",
    ),
    (
        RuleType.PHONE,
        lambda rule, text: rule.phone and not is_phone(text),
        lambda field, rule: "Please enter a valid phone number",
    ),
    (
        RuleType.URL,
        lambda rule, text: rule.url and not is_url(text),
        lambda field, rule: "Please enter a valid URL",
    ),
)


class FormValidator:
    """Holds per-field rules and validates values against them."""

    def __init__(self, rules: Mapping[str, ValidationRule] | None = None):
        self._rules: dict[str, ValidationRule] = {}
        if rules:
            self.add_rules(rules)

    @property
    def rules(self) -> dict[str, ValidationRule]:
        return dict(self._rules)

    def add_rule(self, field: str, rule: ValidationRule) -> None:
        """Attach ``rule`` to ``field``, replacing any earlier rule."""
        self._rules[field] = rule

    def add_rules(self, rules: Mapping[str, ValidationRule]) -> None:
        self._rules.update(rules)

    def validate_field(self, field: str, value: Any) -> FieldError | None:
        """Return the first violated rule for ``field``, or None.

        Fields without a rule always pass.
        """
        rule = self._rules.get(field)
        if rule is None:
            return None

        if is_empty(value):
            if rule.required:
                return FieldError(field, rule.message or f"{field} is required", RuleType.REQUIRED.value)
            return None

        text = str(value)
        for rule_type, failed, default_message in _STRING_CHECKS:
            if failed(rule, text):
                return FieldError(field, rule.message or default_message(field, rule), rule_type.value)

        if rule.custom is not None:
            message = rule.custom(value)
            if message:
                return FieldError(field, message, RuleType.CUSTOM.value)

        return None

    def validate_form(self, data: Mapping[str, Any]) -> dict[str, FieldError]:
        """Validate every declared field; return only the failures."""
        errors: dict[str, FieldError] = {}
        for field in self._rules:
            error = self.validate_field(field, data.get(field))
            if error is not None:
                errors[field] = error
        if errors:
            logger.debug("form_invalid", fields=sorted(errors))
        return errors

    def is_valid(self, data: Mapping[str, Any]) -> bool:
        return not self.validate_form(data)


__all__ = [
    "EMAIL_PATTERN",
    "PHONE_PATTERN",
    "FormValidator",
    "is_email",
    "is_empty",
    "is_phone",
    "is_url",
]
