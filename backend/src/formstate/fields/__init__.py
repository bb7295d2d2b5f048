"""Field state, registry and stale-result guard."""

from formstate.fields.guard import StaleGuard
from formstate.fields.registry import FieldHandle, FieldOwner, FieldRegistry
from formstate.fields.types import FieldState

__all__ = [
    "FieldHandle",
    "FieldOwner",
    "FieldRegistry",
    "FieldState",
    "StaleGuard",
]
