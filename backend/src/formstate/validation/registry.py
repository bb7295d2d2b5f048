"""Named custom validator registry.

Form definitions loaded from YAML refer to custom validators by name.
Applications register the callables at startup, either directly or with
the ``@validator`` decorator.
"""

from collections.abc import Callable

from formstate.validation.types import CustomValidator


class CustomValidatorRegistry:
    """Registry for custom validator callables.

    Validators must be explicitly registered before a form definition can
    reference them.

    Example:
        @validator("uniqueEmail")
        async def unique_email(value):
            if await users.exists(email=value):
                return "Email already registered"
            return None

        # Later, resolve from metadata
        fn = CustomValidatorRegistry.get("uniqueEmail")
    """

    _validators: dict[str, CustomValidator] = {}

    @classmethod
    def register(cls, name: str, fn: CustomValidator) -> None:
        """Register a validator callable by name.

        Idempotent - re-registering the same name is a no-op.

        Args:
            name: Unique identifier referenced from form definitions
            fn: Callable taking the field value, sync or async
        """
        if name in cls._validators:
            return
        cls._validators[name] = fn

    @classmethod
    def get(cls, name: str) -> CustomValidator:
        """Get a registered validator by name.

        Raises:
            ValueError: If validator is not registered
        """
        if name not in cls._validators:
            raise ValueError(
                f"Custom validator '{name}' is not registered. "
                "Custom validators must be explicitly registered at application startup."
            )
        return cls._validators[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        """Check if a validator is registered."""
        return name in cls._validators

    @classmethod
    def list_registered(cls) -> list[str]:
        """List all registered validator names."""
        return sorted(cls._validators.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._validators.clear()


def validator(name: str) -> Callable[[CustomValidator], CustomValidator]:
    """Decorator to register a custom validator.

    Usage:
        @validator("noSpaces")
        def no_spaces(value):
            return "Spaces are not allowed" if " " in value else None
    """

    def decorator(fn: CustomValidator) -> CustomValidator:
        CustomValidatorRegistry.register(name, fn)
        return fn

    return decorator
