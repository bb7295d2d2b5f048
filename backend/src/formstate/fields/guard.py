"""Stale result suppression for asynchronous validation.

Every validation start takes a token from the field's monotonic
sequence. A completion may write back into the field only while its
token is still the latest one, so a slow response for an old value can
never replace the result for a newer value. Python ints do not overflow,
so a token can never alias an earlier one.
"""

from formstate.fields.types import FieldState


class StaleGuard:
    """Issues and checks per-field validation tokens.

    Example:
        token = guard.begin_validation(state)
        outcome = await engine.validate_async(state.value, state.rule)
        if guard.is_current(state, token):
            state.error = outcome.error
    """

    def begin_validation(self, state: FieldState) -> int:
        """Start a validation run and return its token."""
        state.sequence += 1
        return state.sequence

    def invalidate(self, state: FieldState) -> None:
        """Supersede every in-flight run without starting a new one."""
        state.sequence += 1

    def is_current(self, state: FieldState, token: int) -> bool:
        """True if no run has started on this field since ``token`` was issued."""
        return token == state.sequence
