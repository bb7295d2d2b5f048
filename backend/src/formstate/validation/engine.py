"""Rule evaluation for form fields.

The engine is stateless: it maps (value, rule) to a ValidationOutcome and
never touches field state. Checks run in a fixed order and the first
failure wins:

    required -> min -> max -> pattern -> email -> url
             -> minLength -> maxLength -> custom

A custom validator may return an awaitable, in which case ``validate``
returns an awaitable outcome instead of a plain one. Faults raised by a
custom validator (synchronously or on await) become the generic
"Validation failed" error with the exception kept as ``cause``.
"""

import inspect
import re
from collections.abc import Awaitable
from typing import Any

from formstate.validation.types import (
    CUSTOM,
    EMAIL,
    MAX,
    MAX_LENGTH,
    MIN,
    MIN_LENGTH,
    PATTERN,
    REQUIRED,
    URL,
    VALID,
    ValidationOutcome,
    ValidationRule,
)


# =============================================================================
# Format Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)


def is_empty(value: Any) -> bool:
    """Check if a value counts as missing for the required check."""
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ValidationEngine:
    """Evaluates ValidationRules against values.

    Example:
        engine = ValidationEngine()
        outcome = engine.validate("", ValidationRule(required=True))
        assert outcome.error == "This field is required"

        outcome = await engine.validate_async(value, rule_with_async_custom)
    """

    def check_builtin(self, value: Any, rule: ValidationRule) -> str | None:
        """Run every check except ``custom``. Returns the first error or None."""
        if is_empty(value):
            if rule.required:
                return rule.message_for(REQUIRED)
            # Optional and empty: nothing else applies
            return None

        if _is_number(value):
            if rule.min is not None and value < rule.min:
                return rule.message_for(MIN, min=rule.min)
            if rule.max is not None and value > rule.max:
                return rule.message_for(MAX, max=rule.max)

        if isinstance(value, str):
            if rule.pattern is not None and not rule.pattern.search(value):
                return rule.message_for(PATTERN)
            if rule.email and not EMAIL_PATTERN.match(value):
                return rule.message_for(EMAIL)
            if rule.url and not URL_PATTERN.match(value):
                return rule.message_for(URL)
            if rule.min_length is not None and len(value) < rule.min_length:
                return rule.message_for(MIN_LENGTH, min_length=rule.min_length)
            if rule.max_length is not None and len(value) > rule.max_length:
                return rule.message_for(MAX_LENGTH, max_length=rule.max_length)

        return None

    def validate(
        self, value: Any, rule: ValidationRule | None
    ) -> ValidationOutcome | Awaitable[ValidationOutcome]:
        """Evaluate a rule.

        Returns a ValidationOutcome directly when no suspension is needed,
        otherwise an awaitable resolving to one. The awaitable never raises
        for validator faults.
        """
        if rule is None:
            return VALID

        error = self.check_builtin(value, rule)
        if error:
            return ValidationOutcome(error=error)

        if rule.custom is None or is_empty(value):
            return VALID

        try:
            result = rule.custom(value)
        except Exception as e:
            return self._fault(rule, e)

        if inspect.isawaitable(result):
            return self._settle(rule, result)

        return self._from_custom(rule, result)

    async def validate_async(
        self, value: Any, rule: ValidationRule | None
    ) -> ValidationOutcome:
        """Evaluate a rule, always as a coroutine."""
        outcome = self.validate(value, rule)
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome

    async def _settle(
        self, rule: ValidationRule, pending: Awaitable[Any]
    ) -> ValidationOutcome:
        try:
            result = await pending
        except Exception as e:
            return self._fault(rule, e)
        return self._from_custom(rule, result)

    def _from_custom(self, rule: ValidationRule, result: Any) -> ValidationOutcome:
        if result is None or result == "":
            return VALID
        if not isinstance(result, str):
            return self._fault(
                rule,
                TypeError(
                    f"Custom validator returned {type(result).__name__}, "
                    "expected str or None"
                ),
            )
        return ValidationOutcome(error=result)

    def _fault(self, rule: ValidationRule, cause: BaseException) -> ValidationOutcome:
        return ValidationOutcome(error=rule.message_for(CUSTOM), cause=cause)
