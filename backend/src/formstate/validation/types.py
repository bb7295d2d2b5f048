"""Core types for the formstate validation system.

This module defines the foundational types shared by the engine, the
controller and the YAML loader:
- ValidationMode: when a field revalidates (change, blur, submit)
- ValidationRule: the fixed set of checks a field can carry
- ValidationOutcome: the result of evaluating one rule against one value
"""

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)

# Custom validator signature: (value) -> error | None, sync or async
CustomValidator = Callable[[Any], Union[str, None, Awaitable[Union[str, None]]]]


class ValidationMode(Enum):
    """Policy deciding which interaction triggers (re)validation.

    ON_CHANGE: Every value change validates that field
    ON_BLUR: Marking a field touched validates it
    ON_SUBMIT: Nothing validates until submit()
    """

    ON_CHANGE = "onChange"
    ON_BLUR = "onBlur"
    ON_SUBMIT = "onSubmit"


# Message codes, also the keys accepted in ValidationRule.messages
REQUIRED = "required"
MIN = "min"
MAX = "max"
PATTERN = "pattern"
EMAIL = "email"
URL = "url"
MIN_LENGTH = "minLength"
MAX_LENGTH = "maxLength"
CUSTOM = "custom"

DEFAULT_MESSAGES: dict[str, str] = {
    REQUIRED: "This field is required",
    MIN: "Value must be at least {min}",
    MAX: "Value must be at most {max}",
    PATTERN: "Invalid format",
    EMAIL: "Invalid email address",
    URL: "Invalid URL",
    MIN_LENGTH: "Must be at least {min_length} characters",
    MAX_LENGTH: "Must be at most {max_length} characters",
    CUSTOM: "Validation failed",
}

VALIDATION_FAILED = DEFAULT_MESSAGES[CUSTOM]

# Placeholders a message template may use, with sample values for checking
_TEMPLATE_PARAMS: dict[str, Any] = {"min": 0, "max": 0, "min_length": 0, "max_length": 0}


@dataclass(frozen=True)
class ValidationRule:
    """The checks attached to one field.

    Immutable: to change a live field's checks, register the field again
    with a new rule.

    Attributes:
        required: Value must not be None, "" or an empty list/tuple
        min: Lower bound for numeric values
        max: Upper bound for numeric values
        min_length: Minimum string length
        max_length: Maximum string length
        pattern: Regex searched in string values (str is compiled)
        email: String must look like an email address
        url: String must be an http(s) URL
        custom: Callable returning an error message or None, may be async
        messages: Per-code message overrides ("required", "minLength", ...)
    """

    required: bool = False
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: re.Pattern | None = None
    email: bool = False
    url: bool = False
    custom: CustomValidator | None = None
    messages: dict[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern))
        unknown = set(self.messages) - set(DEFAULT_MESSAGES)
        if unknown:
            raise ValueError(
                f"Unknown message code(s): {', '.join(sorted(unknown))}. "
                "Available codes: " + ", ".join(DEFAULT_MESSAGES)
            )
        for code, template in self.messages.items():
            try:
                template.format(**_TEMPLATE_PARAMS)
            except (KeyError, IndexError, AttributeError, ValueError) as e:
                raise ValueError(
                    f"Invalid message template for '{code}': {template!r} ({e!r}). "
                    "Available placeholders: "
                    + ", ".join("{" + p + "}" for p in _TEMPLATE_PARAMS)
                ) from None

    def message_for(self, code: str, **params: Any) -> str:
        """Format the message for a failed check, honouring overrides.

        Every bound of the rule is available to the template. An override
        that still fails to format falls back to the default message.
        """
        values = {
            "min": self.min,
            "max": self.max,
            "min_length": self.min_length,
            "max_length": self.max_length,
            **params,
        }
        template = self.messages.get(code)
        if template is not None:
            try:
                return template.format(**values)
            except (KeyError, IndexError, AttributeError, ValueError, TypeError) as e:
                logger.warning(
                    "Message override for '%s' failed to format (%r); using default",
                    code,
                    e,
                )
        return DEFAULT_MESSAGES[code].format(**values)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        resolve_custom: Callable[[str], CustomValidator] | None = None,
    ) -> "ValidationRule":
        """Create a ValidationRule from a YAML/JSON dict.

        Args:
            data: camelCase rule mapping (required, minLength, pattern, ...)
            resolve_custom: Looks up a custom validator by name when
                ``custom`` is given as a string

        Raises:
            ValueError: If ``custom`` is a name and no resolver is given
        """
        custom = data.get("custom")
        if isinstance(custom, str):
            if resolve_custom is None:
                raise ValueError(
                    f"Custom validator '{custom}' given by name but no resolver supplied"
                )
            custom = resolve_custom(custom)

        return cls(
            required=bool(data.get("required", False)),
            min=data.get("min"),
            max=data.get("max"),
            min_length=data.get("minLength"),
            max_length=data.get("maxLength"),
            pattern=data.get("pattern"),
            email=bool(data.get("email", False)),
            url=bool(data.get("url", False)),
            custom=custom,
            messages=dict(data.get("messages") or {}),
        )

    def describe(self) -> list[str]:
        """Short human-readable summary of the active checks."""
        parts = []
        if self.required:
            parts.append("required")
        if self.min is not None:
            parts.append(f"min={self.min}")
        if self.max is not None:
            parts.append(f"max={self.max}")
        if self.pattern is not None:
            parts.append(f"pattern={self.pattern.pattern}")
        if self.email:
            parts.append("email")
        if self.url:
            parts.append("url")
        if self.min_length is not None:
            parts.append(f"minLength={self.min_length}")
        if self.max_length is not None:
            parts.append(f"maxLength={self.max_length}")
        if self.custom is not None:
            parts.append(f"custom={getattr(self.custom, '__name__', 'callable')}")
        return parts


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of evaluating a rule against a value.

    Attributes:
        error: Error message, or None when the value is valid
        cause: Exception raised by a custom validator, kept for reporting
    """

    error: str | None = None
    cause: BaseException | None = None

    @property
    def valid(self) -> bool:
        return not self.error

    @property
    def faulted(self) -> bool:
        return self.cause is not None


VALID = ValidationOutcome()
