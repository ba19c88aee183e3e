"""Per-client session state for the market-data relay."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator, Protocol

if TYPE_CHECKING:
    from ..streams.base import BaseStreamAdapter

_session_ids = itertools.count(1)


class Channel(Protocol):
    """Downstream connection a session delivers to.

    ``aiohttp.web.WebSocketResponse`` satisfies this.
    """

    @property
    def closed(self) -> bool: ...

    async def send_json(self, data: Any) -> None: ...


class SubscriptionState(Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Subscription:
    key: str
    adapter: "BaseStreamAdapter"
    state: SubscriptionState = SubscriptionState.CONNECTING


@dataclass(eq=False)
class GatewaySession:
    """One connected downstream client.

    ``identity`` is the client's opaque token and addresses out-of-band
    events such as sync completion; ``session_id`` is unique per connection.
    The subscription table is only changed through :meth:`insert` and
    :meth:`remove`.
    """

    identity: str
    channel: Channel | None = None
    session_id: int = field(default_factory=lambda: next(_session_ids))
    closed: bool = False
    _subscriptions: dict[str, Subscription] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, key: object) -> bool:
        return key in self._subscriptions

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._subscriptions.values()))

    def keys(self) -> list[str]:
        return list(self._subscriptions)

    def get(self, key: str) -> Subscription | None:
        return self._subscriptions.get(key)

    def insert(self, subscription: Subscription) -> None:
        if subscription.key in self._subscriptions:
            raise KeyError(f"subscription {subscription.key!r} already present")
        self._subscriptions[subscription.key] = subscription

    def remove(self, key: str) -> Subscription | None:
        return self._subscriptions.pop(key, None)
