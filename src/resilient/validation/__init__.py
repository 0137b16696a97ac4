"""Resilient Validation -- declarative form field rules.

    rules.py       ValidationRule, FieldError, RuleType
    validator.py   FormValidator (first-violation pipeline per field)
"""

from resilient.validation.rules import FieldError, RuleType, ValidationRule
from resilient.validation.validator import FormValidator

__all__ = ["FieldError", "FormValidator", "RuleType", "ValidationRule"]
