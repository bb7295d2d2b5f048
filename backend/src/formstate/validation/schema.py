"""Standalone validation schema.

A mutable mapping of field name -> ValidationRule for validating plain
value dicts without a FormController, e.g. for server-side re-checks of a
submitted payload.
"""

import asyncio
import dataclasses
import logging
from typing import Any

from formstate.validation.engine import ValidationEngine
from formstate.validation.types import ValidationRule

logger = logging.getLogger(__name__)

_RULE_KEYS = {
    "required": "required",
    "min": "min",
    "max": "max",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
    "email": "email",
    "url": "url",
    "custom": "custom",
    "messages": "messages",
}

_DEFAULT_RULE = ValidationRule()


class ValidationSchema:
    """Field rules that can be edited at runtime.

    Rules added for an existing field are merged: checks set on the new
    rule replace the old ones, the rest are kept.
    """

    def __init__(
        self,
        rules: dict[str, ValidationRule] | None = None,
        engine: ValidationEngine | None = None,
    ):
        self.rules: dict[str, ValidationRule] = dict(rules or {})
        self.engine = engine or ValidationEngine()

    def add_rule(self, field_name: str, rule: ValidationRule) -> ValidationRule:
        """Merge ``rule`` into the field's current rule and return the result."""
        current = self.rules.get(field_name)
        if current is None:
            self.rules[field_name] = rule
            return rule

        overrides: dict[str, Any] = {}
        for f in dataclasses.fields(ValidationRule):
            value = getattr(rule, f.name)
            if value != getattr(_DEFAULT_RULE, f.name):
                overrides[f.name] = value
        if "messages" in overrides:
            overrides["messages"] = {**current.messages, **rule.messages}

        merged = dataclasses.replace(current, **overrides)
        self.rules[field_name] = merged
        return merged

    def remove_rule(self, field_name: str, key: str | None = None) -> None:
        """Remove a field's rule, or only one check of it.

        Args:
            field_name: The field to edit
            key: camelCase check name ("required", "minLength", ...);
                None removes the whole rule

        Raises:
            ValueError: If ``key`` is not a known check name
        """
        if key is None:
            self.rules.pop(field_name, None)
            return

        if key not in _RULE_KEYS:
            raise ValueError(
                f"Unknown rule key '{key}'. Available keys: " + ", ".join(_RULE_KEYS)
            )
        current = self.rules.get(field_name)
        if current is None:
            return
        attr = _RULE_KEYS[key]
        self.rules[field_name] = dataclasses.replace(
            current, **{attr: getattr(_DEFAULT_RULE, attr)}
        )

    async def validate_field(self, field_name: str, value: Any) -> str | None:
        """Validate one value against the named field's rule."""
        outcome = await self.engine.validate_async(value, self.rules.get(field_name))
        if outcome.cause is not None:
            logger.warning(
                "Custom validator for field '%s' failed: %s",
                field_name,
                outcome.cause,
                exc_info=outcome.cause,
            )
        return outcome.error

    async def validate_form(self, values: dict[str, Any]) -> dict[str, str]:
        """Validate every field that has a rule.

        Returns:
            Mapping of field name -> error for the fields that failed
        """
        names = list(self.rules)
        results = await asyncio.gather(
            *(self.validate_field(name, values.get(name)) for name in names)
        )
        return {name: error for name, error in zip(names, results) if error}
