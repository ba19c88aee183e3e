"""Market-data relay: sessions, throttling and addressed delivery."""

from .dispatcher import Dispatcher
from .registry import SubscriptionRegistry
from .session import GatewaySession, Subscription, SubscriptionState
from .throttle import Throttle, throttled

__all__ = [
    "Dispatcher",
    "SubscriptionRegistry",
    "GatewaySession",
    "Subscription",
    "SubscriptionState",
    "Throttle",
    "throttled",
]
