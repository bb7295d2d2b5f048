"""Tests for FieldState, FieldRegistry, FieldHandle and StaleGuard."""

import pytest

from formstate.errors import DetachedHandleError, UnknownFieldError
from formstate.fields import FieldRegistry, FieldState, StaleGuard
from formstate.subscriptions.bus import SubscriptionBus
from formstate.validation.types import ValidationRule


@pytest.fixture
def registry():
    return FieldRegistry()


# =============================================================================
# FieldState
# =============================================================================


class TestFieldState:
    def test_dirty_is_structural(self):
        state = FieldState(name="tags", value=["a", "b"], initial_value=["a", "b"])
        assert not state.dirty
        state.value = ["a"]
        assert state.dirty

    def test_dirty_dicts(self):
        state = FieldState(name="addr", value={"city": "X"}, initial_value={"city": "X"})
        assert not state.dirty
        state.value = {"city": "Y"}
        assert state.dirty

    def test_snapshot_excludes_sequence(self):
        state = FieldState(name="a", value=1, initial_value=1)
        before = state.snapshot()
        state.sequence += 5
        assert state.snapshot() == before


# =============================================================================
# FieldRegistry
# =============================================================================


class TestFieldRegistry:
    def test_register_creates_state(self, registry):
        rule = ValidationRule(required=True)
        handle = registry.register("email", "x@y.z", rule)
        state = registry.get("email")
        assert handle.name == "email"
        assert state.value == "x@y.z"
        assert state.initial_value == "x@y.z"
        assert state.rule is rule
        assert not state.touched
        assert state.error is None

    def test_register_is_idempotent_and_updates_rule(self, registry):
        registry.register("email", "first")
        registry.get("email").value = "edited"

        new_rule = ValidationRule(required=True)
        registry.register("email", "second", new_rule)

        state = registry.get("email")
        assert state.value == "edited"
        assert state.initial_value == "first"
        assert state.rule is new_rule
        assert len(registry) == 1

    def test_initial_value_copied(self, registry):
        tags = ["a"]
        registry.register("tags", tags)
        state = registry.get("tags")
        state.value.append("b")
        assert state.initial_value == ["a"]
        assert state.dirty

    def test_entries_preserve_registration_order(self, registry):
        for name in ("zeta", "alpha", "mid"):
            registry.register(name)
        assert [name for name, _ in registry.entries()] == ["zeta", "alpha", "mid"]
        assert registry.names() == ["zeta", "alpha", "mid"]
        assert list(registry) == ["zeta", "alpha", "mid"]

    def test_entries_is_a_snapshot(self, registry):
        registry.register("a")
        entries = registry.entries()
        registry.register("b")
        assert [name for name, _ in entries] == ["a"]

    def test_unregister(self, registry):
        registry.register("a", 1)
        state = registry.unregister("a")
        assert state.value == 1
        assert "a" not in registry
        assert registry.unregister("a") is None

    def test_unregister_clears_subscriptions(self):
        bus = SubscriptionBus()
        registry = FieldRegistry(bus=bus)
        registry.register("a")
        bus.subscribe("a", lambda: None)
        registry.unregister("a")
        assert bus.listener_count("a") == 0

    def test_require_unknown(self, registry):
        with pytest.raises(UnknownFieldError, match="not registered"):
            registry.require("missing")

    def test_unknown_field_error_is_key_error(self, registry):
        with pytest.raises(KeyError):
            registry.require("missing")


# =============================================================================
# FieldHandle
# =============================================================================


class TestFieldHandle:
    def test_reads_live_state(self, registry):
        handle = registry.register("name", "Jane")
        registry.get("name").value = "Jo"
        assert handle.value == "Jo"
        assert handle.dirty
        assert not handle.touched
        assert handle.error is None
        assert not handle.validating

    def test_detached_handle_cannot_mutate(self, registry):
        handle = registry.register("name", "Jane")
        with pytest.raises(DetachedHandleError):
            handle.set_value("Jo")

    def test_unregistered_handle_read_raises(self, registry):
        handle = registry.register("name")
        registry.unregister("name")
        assert not handle.is_registered
        with pytest.raises(UnknownFieldError):
            _ = handle.value


# =============================================================================
# StaleGuard
# =============================================================================


class TestStaleGuard:
    def test_tokens_increase(self):
        guard = StaleGuard()
        state = FieldState(name="x")
        first = guard.begin_validation(state)
        second = guard.begin_validation(state)
        assert second > first
        assert state.sequence == second

    def test_only_latest_token_is_current(self):
        guard = StaleGuard()
        state = FieldState(name="x")
        old = guard.begin_validation(state)
        new = guard.begin_validation(state)
        assert not guard.is_current(state, old)
        assert guard.is_current(state, new)

    def test_invalidate_supersedes(self):
        guard = StaleGuard()
        state = FieldState(name="x")
        token = guard.begin_validation(state)
        guard.invalidate(state)
        assert not guard.is_current(state, token)

    def test_tokens_per_field(self):
        guard = StaleGuard()
        a = FieldState(name="a")
        b = FieldState(name="b")
        token_a = guard.begin_validation(a)
        guard.begin_validation(b)
        assert guard.is_current(a, token_a)

    def test_no_wraparound_past_53_bits(self):
        guard = StaleGuard()
        state = FieldState(name="x", sequence=2**53)
        token = guard.begin_validation(state)
        assert token == 2**53 + 1
        assert guard.is_current(state, token)
