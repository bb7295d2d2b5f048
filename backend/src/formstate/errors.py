"""Exceptions raised by formstate.

Validation and submission failures are recorded as state, not raised.
These exceptions cover programming errors at the API boundary.
"""


class FormStateError(Exception):
    """Base class for formstate errors."""
    pass


class UnknownFieldError(FormStateError, KeyError):
    """A field name was looked up that is not registered."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Field '{self.name}' is not registered"


class DetachedHandleError(FormStateError):
    """A FieldHandle without an owning controller was asked to mutate state."""
    pass
