"""Form-level configuration."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union

from formstate.subscriptions.bus import DEFAULT_MAX_PASSES
from formstate.validation.types import CustomValidator, ValidationMode, ValidationRule

# Submit handler signature: (values) -> None, sync or async
SubmitHandler = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]

# Called with (field name, exception) when a custom validator faults
ValidatorErrorHook = Callable[[str, BaseException], None]


@dataclass
class FormConfig:
    """Configuration of one FormController.

    Attributes:
        initial_values: Initial value per field name
        validation_rules: Rule per field name
        mode: When fields revalidate (ValidationMode or its string value)
        reset_on_submit: Reset the form after a successful submission
        validate_on_mount: Validate each field right after it registers
        retain_unmounted: Keep an unregistered field's last value and
            restore it if the field registers again
        on_submit: Default submit handler used when submit() gets none
        on_validator_error: Receives custom validator faults
        max_notify_passes: Bound on queued re-deliveries per notify call
    """

    initial_values: dict[str, Any] = field(default_factory=dict)
    validation_rules: dict[str, ValidationRule] = field(default_factory=dict)
    mode: ValidationMode = ValidationMode.ON_CHANGE
    reset_on_submit: bool = False
    validate_on_mount: bool = False
    retain_unmounted: bool = True
    on_submit: SubmitHandler | None = None
    on_validator_error: ValidatorErrorHook | None = None
    max_notify_passes: int = DEFAULT_MAX_PASSES

    def __post_init__(self) -> None:
        # Accepts "onChange" etc.; raises ValueError for unknown modes
        self.mode = ValidationMode(self.mode)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        resolve_custom: Callable[[str], CustomValidator] | None = None,
    ) -> FormConfig:
        """Create FormConfig from the camelCase form contract.

        ``validationRules`` values may be ValidationRule instances or rule
        dicts (see ValidationRule.from_dict).
        """
        rules: dict[str, ValidationRule] = {}
        for name, rule in (data.get("validationRules") or {}).items():
            if isinstance(rule, ValidationRule):
                rules[name] = rule
            else:
                rules[name] = ValidationRule.from_dict(rule, resolve_custom)

        return cls(
            initial_values=dict(data.get("initialValues") or {}),
            validation_rules=rules,
            mode=data.get("mode", ValidationMode.ON_CHANGE.value),
            reset_on_submit=bool(data.get("resetOnSubmit", False)),
            validate_on_mount=bool(data.get("validateOnMount", False)),
            retain_unmounted=bool(data.get("retainUnmounted", True)),
            on_submit=data.get("onSubmit"),
            on_validator_error=data.get("onValidatorError"),
        )
