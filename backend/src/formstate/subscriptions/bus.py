"""Scoped change notification.

Listeners subscribe either to one field name or to the whole-form scope,
and ``notify`` only wakes listeners of exactly that scope: a keystroke in
one field never re-runs the listeners of every other field.

Delivery is synchronous and in subscription order. A listener that
triggers a notification for the scope currently being delivered (for
example by calling set_field_value from inside its own callback) does not
recurse: the request is queued and delivered as one more pass after the
current pass completes. Requests queued during the same pass coalesce.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class Scope(Enum):
    """Non-field notification scopes."""

    FORM = "form"


FORM_SCOPE = Scope.FORM

ScopeKey = Union[str, Scope]

# Upper bound of queued re-deliveries for one scope within one notify call
DEFAULT_MAX_PASSES = 100


@dataclass(eq=False)
class _Subscription:
    listener: Listener
    active: bool = True


class SubscriptionBus:
    """Per-scope listener lists with re-entrancy-safe delivery.

    Example:
        bus = SubscriptionBus()
        unsubscribe = bus.subscribe("email", rerender_email_input)
        bus.notify("email")
        unsubscribe()
    """

    def __init__(self, max_passes: int = DEFAULT_MAX_PASSES):
        if max_passes < 1:
            raise ValueError("max_passes must be at least 1")
        self.max_passes = max_passes
        self._subscriptions: dict[ScopeKey, list[_Subscription]] = {}
        self._delivering: set[ScopeKey] = set()
        self._queued: set[ScopeKey] = set()

    def subscribe(self, scope: ScopeKey, listener: Listener) -> Callable[[], None]:
        """Add a listener to a scope. Returns an idempotent unsubscribe callable."""
        subscription = _Subscription(listener)
        self._subscriptions.setdefault(scope, []).append(subscription)

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            remaining = self._subscriptions.get(scope)
            if remaining is None:
                return
            remaining[:] = [s for s in remaining if s is not subscription]
            if not remaining:
                del self._subscriptions[scope]

        return unsubscribe

    def notify(self, scope: ScopeKey) -> None:
        """Deliver to every listener of ``scope``, in subscription order."""
        if scope in self._delivering:
            self._queued.add(scope)
            return

        self._delivering.add(scope)
        try:
            passes = 0
            while True:
                passes += 1
                self._deliver(scope)
                if scope not in self._queued:
                    break
                self._queued.discard(scope)
                if passes >= self.max_passes:
                    logger.warning(
                        "Dropping notification for scope %r after %d passes; "
                        "a listener keeps re-triggering its own scope",
                        scope,
                        passes,
                    )
                    break
        finally:
            self._delivering.discard(scope)
            self._queued.discard(scope)

    def _deliver(self, scope: ScopeKey) -> None:
        for subscription in list(self._subscriptions.get(scope, ())):
            # Unsubscribed earlier in this pass
            if not subscription.active:
                continue
            try:
                subscription.listener()
            except Exception:
                logger.exception("Listener for scope %r failed", scope)

    def clear(self, scope: ScopeKey) -> None:
        """Drop every listener of a scope (used when a field unmounts)."""
        for subscription in self._subscriptions.pop(scope, ()):
            subscription.active = False

    def listener_count(self, scope: ScopeKey) -> int:
        return len(self._subscriptions.get(scope, ()))

    def scopes(self) -> list[ScopeKey]:
        return list(self._subscriptions)
