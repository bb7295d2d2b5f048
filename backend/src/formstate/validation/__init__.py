"""formstate validation layer.

Usage:
    from formstate.validation import ValidationEngine, ValidationRule

    engine = ValidationEngine()
    outcome = await engine.validate_async("a@b", ValidationRule(email=True))
"""

from formstate.validation.engine import (
    EMAIL_PATTERN,
    URL_PATTERN,
    ValidationEngine,
    is_empty,
)
from formstate.validation.registry import CustomValidatorRegistry, validator
from formstate.validation.schema import ValidationSchema
from formstate.validation.types import (
    DEFAULT_MESSAGES,
    VALIDATION_FAILED,
    CustomValidator,
    ValidationMode,
    ValidationOutcome,
    ValidationRule,
)

__all__ = [
    # Types
    "CustomValidator",
    "DEFAULT_MESSAGES",
    "VALIDATION_FAILED",
    "ValidationMode",
    "ValidationOutcome",
    "ValidationRule",
    # Engine
    "EMAIL_PATTERN",
    "URL_PATTERN",
    "ValidationEngine",
    "is_empty",
    # Registry
    "CustomValidatorRegistry",
    "validator",
    # Schema
    "ValidationSchema",
]
