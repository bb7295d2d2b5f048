"""Per-field state."""

from dataclasses import dataclass, field
from typing import Any

from formstate.validation.types import ValidationRule


@dataclass
class FieldState:
    """Mutable state of one registered field.

    Only FormController methods mutate a FieldState; subscribers read it.

    Attributes:
        name: Field name (registry key)
        value: Current value
        initial_value: Value captured at registration, used by reset and dirty
        rule: Checks to run, or None for an unvalidated field
        error: Latest accepted validation error; None means valid
        touched: Set on first blur, cleared only by reset
        validating: An asynchronous validation run is in flight
        sequence: Incremented at every validation start (see StaleGuard)
        needs_validation: Value changed since the last validation started
    """

    name: str
    value: Any = None
    initial_value: Any = None
    rule: ValidationRule | None = None
    error: str | None = None
    touched: bool = False
    validating: bool = False
    sequence: int = 0
    needs_validation: bool = field(default=False, repr=False)

    @property
    def dirty(self) -> bool:
        """The current value differs structurally from the initial value."""
        return self.value != self.initial_value

    @property
    def valid(self) -> bool:
        return not self.error

    def snapshot(self) -> dict[str, Any]:
        """Observable state as a plain dict (sequence excluded)."""
        return {
            "value": self.value,
            "initial_value": self.initial_value,
            "error": self.error,
            "touched": self.touched,
            "dirty": self.dirty,
            "validating": self.validating,
        }
