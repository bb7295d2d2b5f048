"""Form controller.

Wires the FieldRegistry, ValidationEngine, StaleGuard and SubscriptionBus
together and owns every mutation of field state:

1. set_field_value / set_field_touched update a field, notify its scope,
   and revalidate according to the form's ValidationMode
2. submit() validates every registered field, then hands a snapshot of
   the values to the submit handler
3. reset() puts every field back to its initial value in place

Failures never escape the mutating methods. Validation errors live in
FieldState.error, submit handler failures in ``submit_error``.
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from formstate.errors import UnknownFieldError
from formstate.fields.guard import StaleGuard
from formstate.fields.registry import FieldHandle, FieldRegistry
from formstate.fields.types import FieldState
from formstate.form.config import FormConfig, SubmitHandler
from formstate.subscriptions.bus import FORM_SCOPE, Listener, ScopeKey, SubscriptionBus
from formstate.validation.engine import ValidationEngine
from formstate.validation.types import ValidationMode, ValidationOutcome, ValidationRule

if TYPE_CHECKING:
    from formstate.metadata.loader import FormDefinition

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class SubmitStatus(Enum):
    """How a submit() call ended."""

    IGNORED = "ignored"  # Another submission was in flight
    INVALID = "invalid"  # At least one field failed validation
    FAILED = "failed"  # The submit handler raised
    SUCCEEDED = "succeeded"


@dataclass
class SubmitResult:
    """Return value of FormController.submit().

    Attributes:
        status: How the submission ended
        values: Values snapshot passed to the handler (None if not reached)
        errors: Field errors that aborted the submission
        error: submit_error of a FAILED submission
    """

    status: SubmitStatus
    values: dict[str, Any] | None = None
    errors: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is SubmitStatus.SUCCEEDED


class FormController:
    """Top-level form state orchestrator.

    Example:
        form = FormController(
            initial_values={"email": ""},
            validation_rules={"email": ValidationRule(required=True, email=True)},
            mode="onBlur",
        )
        email = form.register_field("email")
        email.subscribe(rerender_email)

        email.set_value("a@b.com")
        email.set_touched()
        result = await form.submit(save_signup)
    """

    def __init__(
        self,
        config: FormConfig | None = None,
        *,
        engine: ValidationEngine | None = None,
        **options: Any,
    ):
        if config is None:
            config = FormConfig(**options)
        elif options:
            raise TypeError("Pass either a FormConfig or keyword options, not both")

        self.config = config
        self.engine = engine or ValidationEngine()
        self.guard = StaleGuard()
        self.bus = SubscriptionBus(max_passes=config.max_notify_passes)
        self.registry = FieldRegistry(owner=self, bus=self.bus)

        self._is_submitting = False
        self._submit_count = 0
        self._submit_error: str | None = None
        self._submit_exception: BaseException | None = None
        self._retained: dict[str, Any] = {}
        self._tasks: set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return (
            f"FormController(mode={self.config.mode.value!r}, "
            f"fields={self.registry.names()!r})"
        )

    @classmethod
    def from_definition(cls, definition: FormDefinition, **overrides: Any) -> FormController:
        """Build a controller from a loaded form definition and register its fields.

        Keyword overrides replace FormConfig attributes (e.g. ``mode``).
        """
        config = definition.to_config()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        form = cls(config)
        for field_def in definition.fields:
            form.register_field(field_def.name, field_def.initial_value, field_def.rule)
        return form

    # =========================================================================
    # Registration
    # =========================================================================

    def register_field(
        self,
        name: str,
        initial_value: Any = None,
        rule: ValidationRule | None = None,
    ) -> FieldHandle:
        """Register a field as it mounts.

        The initial value comes from the form's ``initial_values`` when it
        has an entry for ``name``, otherwise from ``initial_value``. The
        rule defaults to the form's ``validation_rules`` entry.

        Registering an existing name only updates its rule.
        """
        if rule is None:
            rule = self.config.validation_rules.get(name)

        existing = self.registry.get(name)
        if existing is not None:
            existing.needs_validation = True
            return self.registry.register(name, existing.initial_value, rule)

        initial = self.config.initial_values.get(name, initial_value)
        handle = self.registry.register(name, initial, rule)
        state = self.registry.require(name)
        if name in self._retained:
            state.value = self._retained.pop(name)

        logger.debug("Registered field '%s'", name)
        self.bus.notify(FORM_SCOPE)

        if self.config.validate_on_mount:
            self._trigger(name, state)
        return handle

    def register_initial_fields(self) -> list[FieldHandle]:
        """Register every field named in initial_values or validation_rules."""
        names = list(self.config.initial_values)
        names += [n for n in self.config.validation_rules if n not in self.config.initial_values]
        return [self.register_field(name) for name in names]

    def unregister_field(self, name: str) -> None:
        """Unregister a field as it unmounts.

        In-flight validation for the field is invalidated. With
        ``retain_unmounted`` the last value is kept for a later
        re-registration.
        """
        state = self.registry.unregister(name)
        if state is None:
            return
        self.guard.invalidate(state)
        if self.config.retain_unmounted:
            self._retained[name] = state.value
        logger.debug("Unregistered field '%s'", name)
        self.bus.notify(FORM_SCOPE)

    def handle(self, name: str) -> FieldHandle:
        """Handle for a registered field.

        Raises:
            UnknownFieldError: If the field is not registered
        """
        if name not in self.registry:
            raise UnknownFieldError(name)
        return FieldHandle(self.registry, name)

    def field(self, name: str) -> FieldState | None:
        return self.registry.get(name)

    def subscribe(self, scope: ScopeKey, listener: Listener) -> Callable[[], None]:
        """Subscribe to a field name or to FORM_SCOPE."""
        return self.bus.subscribe(scope, listener)

    # =========================================================================
    # Field mutations
    # =========================================================================

    def set_field_value(self, name: str, value: Any) -> None:
        """Set a field's value; validates it in ON_CHANGE mode.

        Unknown names are registered on the fly.
        """
        state = self._ensure_field(name)
        state.value = value
        state.needs_validation = True
        self.bus.notify(name)

        if self.config.mode is ValidationMode.ON_CHANGE:
            self._trigger(name, state)

    def set_field_touched(self, name: str, touched: bool = True) -> None:
        """Mark a field touched (blur); validates it in ON_BLUR mode.

        A blur revalidates when the field becomes touched, or when its value
        changed since the last validation.
        """
        state = self._ensure_field(name)
        was_touched = state.touched
        state.touched = touched
        if was_touched != touched:
            self.bus.notify(name)

        if (
            self.config.mode is ValidationMode.ON_BLUR
            and touched
            and (not was_touched or state.needs_validation)
        ):
            self._trigger(name, state)

    def set_field_error(self, name: str, error: str | None) -> None:
        """Set a field's error directly (e.g. a server-side rejection).

        Supersedes any in-flight validation of the field.
        """
        state = self.registry.get(name)
        if state is None:
            logger.warning("Ignoring error for unregistered field '%s'", name)
            return
        self.guard.invalidate(state)
        state.error = error or None
        state.validating = False
        self.bus.notify(name)

    def set_errors(self, errors: dict[str, str | None]) -> None:
        """Set errors for several fields at once."""
        for name, error in errors.items():
            self.set_field_error(name, error)

    def _ensure_field(self, name: str) -> FieldState:
        state = self.registry.get(name)
        if state is None:
            self.register_field(name)
            state = self.registry.require(name)
        return state

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate_field(self, name: str) -> str | None:
        """Validate one field now, regardless of mode. Returns its error.

        Raises:
            UnknownFieldError: If the field is not registered
        """
        state = self.registry.require(name)
        pending = self._start_validation(name, state)
        if pending is not None:
            await pending
        return state.error

    async def validate(self, name: str | None = None) -> bool:
        """Validate one field or every registered field. Returns validity."""
        if name is not None:
            return not await self.validate_field(name)

        fields = self.registry.entries()
        await self._validate_all(fields)
        return all(not state.error for _, state in fields)

    async def wait_for_validation(self) -> None:
        """Wait until every scheduled validation run has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _validate_all(self, fields: list[tuple[str, FieldState]]) -> None:
        pending = []
        for name, state in fields:
            run = self._start_validation(name, state)
            if run is not None:
                pending.append(run)
        if pending:
            await asyncio.gather(*pending)

    def _trigger(self, name: str, state: FieldState) -> None:
        """Start validation from a synchronous entry point."""
        pending = self._start_validation(name, state)
        if pending is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop to schedule on: drive the run to completion here
            asyncio.run(pending)
            return

        task = loop.create_task(pending)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _start_validation(
        self, name: str, state: FieldState
    ) -> Awaitable[None] | None:
        """Begin a run. Applies synchronous outcomes immediately.

        Returns an awaitable when the run has to suspend, else None.
        """
        token = self.guard.begin_validation(state)
        state.needs_validation = False
        outcome = self.engine.validate(state.value, state.rule)

        if not inspect.isawaitable(outcome):
            self._apply(name, state, token, outcome)
            return None

        if not state.validating:
            state.validating = True
            self._notify_field(name, state)
        return self._settle(name, state, token, outcome)

    async def _settle(
        self,
        name: str,
        state: FieldState,
        token: int,
        pending: Awaitable[ValidationOutcome],
    ) -> None:
        outcome = await pending
        self._apply(name, state, token, outcome)

    def _apply(
        self, name: str, state: FieldState, token: int, outcome: ValidationOutcome
    ) -> None:
        if outcome.cause is not None:
            self._report_fault(name, outcome.cause)

        if not self.guard.is_current(state, token):
            logger.debug(
                "Discarding stale validation result for field '%s' (token %d, current %d)",
                name,
                token,
                state.sequence,
            )
            return

        changed = state.error != outcome.error or state.validating
        state.error = outcome.error
        state.validating = False
        if changed:
            self._notify_field(name, state)

    def _report_fault(self, name: str, cause: BaseException) -> None:
        hook = self.config.on_validator_error
        if hook is None:
            logger.warning(
                "Custom validator for field '%s' failed: %s", name, cause, exc_info=cause
            )
            return
        try:
            hook(name, cause)
        except Exception:
            logger.exception("on_validator_error hook failed for field '%s'", name)

    def _notify_field(self, name: str, state: FieldState) -> None:
        # Unregistered while a run was in flight: nobody is listening
        if self.registry.get(name) is state:
            self.bus.notify(name)

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit(self, on_submit: SubmitHandler | None = None) -> SubmitResult:
        """Validate every field and, if all pass, call the submit handler.

        A call made while another submission is in flight is ignored.
        Handler failures are stored in ``submit_error``; this coroutine
        does not raise for them. Without any handler the call validates
        only.
        """
        if self._is_submitting:
            logger.debug("Ignoring submit: a submission is already in progress")
            return SubmitResult(SubmitStatus.IGNORED)

        handler = on_submit or self.config.on_submit
        self._is_submitting = True
        self._submit_error = None
        self._submit_exception = None
        self.bus.notify(FORM_SCOPE)
        try:
            return await self._run_submission(handler)
        finally:
            self._is_submitting = False
            self.bus.notify(FORM_SCOPE)

    async def _run_submission(self, handler: SubmitHandler | None) -> SubmitResult:
        # Fields registered from here on are not part of this submission
        fields = self.registry.entries()

        for name, state in fields:
            if not state.touched:
                state.touched = True
                self._notify_field(name, state)

        await self._validate_all(fields)
        # A value changed while the pass was suspended: its result was
        # superseded, so validate the current value before deciding
        while True:
            unsettled = [
                (name, state)
                for name, state in fields
                if state.validating or state.needs_validation
            ]
            if not unsettled:
                break
            logger.debug("Revalidating %d field(s) changed during submit", len(unsettled))
            await self._validate_all(unsettled)
        self._submit_count += 1

        errors = {name: state.error for name, state in fields if state.error}
        if errors:
            logger.debug("Submit aborted: %d field(s) invalid", len(errors))
            return SubmitResult(SubmitStatus.INVALID, errors=errors)

        values = copy.deepcopy({name: state.value for name, state in fields})

        if handler is not None:
            try:
                result = handler(values)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._submit_error = str(e) or type(e).__name__
                self._submit_exception = e
                logger.warning("Submit handler failed: %s", e, exc_info=e)
                return SubmitResult(
                    SubmitStatus.FAILED, values=values, error=self._submit_error
                )

        if self.config.reset_on_submit:
            self.reset()
        return SubmitResult(SubmitStatus.SUCCEEDED, values=values)

    # =========================================================================
    # Reset
    # =========================================================================

    def reset(self, to_values: dict[str, Any] | None = None, *, rebase: bool = False) -> None:
        """Put every field back to its initial state, in place.

        Args:
            to_values: Per-field values to reset to instead of the initial
                values (None entries fall back to the initial value)
            rebase: Also make the reset values the new initial values, so
                the form is clean afterwards
        """
        fields = self.registry.entries()
        for _, state in fields:
            value = to_values.get(state.name) if to_values else None
            if value is None:
                value = state.initial_value
            if rebase:
                state.initial_value = copy.deepcopy(value)
            state.value = copy.deepcopy(value)
            state.touched = False
            state.error = None
            state.validating = False
            state.needs_validation = False
            # Late results from runs started before the reset are dropped
            self.guard.invalidate(state)

        self._retained.clear()
        self._submit_error = None
        self._submit_exception = None

        for name, _ in fields:
            self.bus.notify(name)
        self.bus.notify(FORM_SCOPE)

    # =========================================================================
    # Aggregate state
    # =========================================================================

    @property
    def values(self) -> dict[str, Any]:
        return {name: state.value for name, state in self.registry.entries()}

    @property
    def errors(self) -> dict[str, str]:
        return {
            name: state.error for name, state in self.registry.entries() if state.error
        }

    @property
    def touched(self) -> dict[str, bool]:
        return {name: state.touched for name, state in self.registry.entries()}

    @property
    def is_valid(self) -> bool:
        return not any(state.error for _, state in self.registry.entries())

    @property
    def is_dirty(self) -> bool:
        return any(state.dirty for _, state in self.registry.entries())

    @property
    def is_touched(self) -> bool:
        return any(state.touched for _, state in self.registry.entries())

    @property
    def is_validating(self) -> bool:
        return any(state.validating for _, state in self.registry.entries())

    @property
    def is_submitting(self) -> bool:
        return self._is_submitting

    @property
    def submit_count(self) -> int:
        return self._submit_count

    @property
    def submit_error(self) -> str | None:
        return self._submit_error

    @property
    def submit_exception(self) -> BaseException | None:
        return self._submit_exception
