"""Subscription bus."""

from formstate.subscriptions.bus import (
    FORM_SCOPE,
    Listener,
    Scope,
    ScopeKey,
    SubscriptionBus,
)

__all__ = [
    "FORM_SCOPE",
    "Listener",
    "Scope",
    "ScopeKey",
    "SubscriptionBus",
]
