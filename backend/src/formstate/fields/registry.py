"""Field registry for formstate.

Fields mount and unmount dynamically. Instead of tying field state to a
UI component lifecycle, the UI layer sends explicit register/unregister
calls; the registry keeps the state in registration order so iteration
for validation and serialization is deterministic.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from formstate.errors import DetachedHandleError, UnknownFieldError
from formstate.fields.types import FieldState
from formstate.validation.types import ValidationRule

if TYPE_CHECKING:
    from formstate.subscriptions.bus import SubscriptionBus


class FieldOwner(Protocol):
    """What a FieldHandle needs from the object that owns the registry."""

    def set_field_value(self, name: str, value: Any) -> None: ...

    def set_field_touched(self, name: str, touched: bool = True) -> None: ...

    def set_field_error(self, name: str, error: str | None) -> None: ...

    async def validate_field(self, name: str) -> str | None: ...

    def subscribe(self, scope: Any, listener: Callable[[], None]) -> Callable[[], None]: ...

    def unregister_field(self, name: str) -> None: ...


class FieldRegistry:
    """Ordered map of field name -> FieldState.

    Example:
        registry = FieldRegistry()
        handle = registry.register("email", "", ValidationRule(required=True))
        for name, state in registry.entries():
            ...
    """

    def __init__(
        self,
        owner: FieldOwner | None = None,
        bus: SubscriptionBus | None = None,
    ):
        self.owner = owner
        self.bus = bus
        self._fields: dict[str, FieldState] = {}

    def register(
        self,
        name: str,
        initial_value: Any = None,
        rule: ValidationRule | None = None,
    ) -> FieldHandle:
        """Register a field, or update the rule of an existing one.

        Idempotent per name: re-registering keeps the current value,
        initial value, touched flag and error, and only swaps the rule.
        """
        state = self._fields.get(name)
        if state is None:
            self._fields[name] = FieldState(
                name=name,
                value=copy.deepcopy(initial_value),
                initial_value=initial_value,
                rule=rule,
            )
        else:
            state.rule = rule
        return FieldHandle(self, name)

    def unregister(self, name: str) -> FieldState | None:
        """Remove a field and its subscriptions. Returns the removed state."""
        state = self._fields.pop(name, None)
        if state is not None and self.bus is not None:
            self.bus.clear(name)
        return state

    def get(self, name: str) -> FieldState | None:
        return self._fields.get(name)

    def require(self, name: str) -> FieldState:
        """Like get(), but raises UnknownFieldError for unregistered names."""
        state = self._fields.get(name)
        if state is None:
            raise UnknownFieldError(name)
        return state

    def entries(self) -> list[tuple[str, FieldState]]:
        """Snapshot of (name, state) pairs in registration order."""
        return list(self._fields.items())

    def names(self) -> list[str]:
        return list(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self):
        return iter(list(self._fields))


class FieldHandle:
    """Consumer-facing view of one field.

    Reads go to the live FieldState; writes go through the owning
    controller so validation and notifications happen.
    """

    def __init__(self, registry: FieldRegistry, name: str):
        self._registry = registry
        self.name = name

    def __repr__(self) -> str:
        return f"FieldHandle({self.name!r})"

    @property
    def state(self) -> FieldState:
        return self._registry.require(self.name)

    @property
    def value(self) -> Any:
        return self.state.value

    @property
    def error(self) -> str | None:
        return self.state.error

    @property
    def touched(self) -> bool:
        return self.state.touched

    @property
    def dirty(self) -> bool:
        return self.state.dirty

    @property
    def validating(self) -> bool:
        return self.state.validating

    @property
    def is_registered(self) -> bool:
        return self.name in self._registry

    def _owner(self) -> FieldOwner:
        if self._registry.owner is None:
            raise DetachedHandleError(
                f"Field '{self.name}' has no owning form; register it through a FormController"
            )
        return self._registry.owner

    def set_value(self, value: Any) -> None:
        self._owner().set_field_value(self.name, value)

    def set_touched(self, touched: bool = True) -> None:
        self._owner().set_field_touched(self.name, touched)

    def set_error(self, error: str | None) -> None:
        self._owner().set_field_error(self.name, error)

    async def validate(self) -> str | None:
        return await self._owner().validate_field(self.name)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to this field's scope only."""
        return self._owner().subscribe(self.name, listener)

    def unregister(self) -> None:
        self._owner().unregister_field(self.name)

    def props(self) -> dict[str, Any]:
        """Bindings for an input component.

        The error is only exposed once the field has been touched.
        """
        state = self.state
        return {
            "name": self.name,
            "value": state.value,
            "error": state.error if state.touched else None,
            "touched": state.touched,
            "on_change": self.set_value,
            "on_blur": lambda: self.set_touched(True),
        }
