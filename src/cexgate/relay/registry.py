"""Subscription lifecycle for connected clients."""

from __future__ import annotations

import logging
import time
from typing import Callable

from ..streams.base import BaseStreamAdapter
from ..streams.events import EventSink, StreamEvent
from ..streams.factory import create_stream_adapter
from .dispatcher import Dispatcher
from .session import Channel, GatewaySession, Subscription, SubscriptionState
from .throttle import Clock, throttled

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[str, EventSink], BaseStreamAdapter]

STREAM_ERROR_EVENT = "stream-error"


class SubscriptionRegistry:
    """Owns every client session and the upstream adapters they hold.

    Each subscription key of a session maps to exactly one adapter, which is
    never shared with other sessions or keys. Subscribing twice is a no-op,
    as is unsubscribing an unknown key. Releasing a subscription always
    closes the adapter and then removes the entry; session teardown does the
    same for every remaining entry, exactly once per session.

    Market data is rate limited per subscription and goes only to the
    owning session. Upstream failures release the subscription without
    retrying and tell the owner with a ``stream-error`` event.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        throttle_delay: float = 10.0,
        adapter_factory: AdapterFactory | None = None,
        clock: Clock = time.monotonic,
    ):
        self.dispatcher = dispatcher
        self.throttle_delay = throttle_delay
        self._adapter_factory = adapter_factory or create_stream_adapter
        self._clock = clock
        self._sessions: set[GatewaySession] = set()

    @property
    def sessions(self) -> list[GatewaySession]:
        return list(self._sessions)

    @property
    def subscription_count(self) -> int:
        return sum(len(session) for session in self._sessions)

    def open_session(self, identity: str, channel: Channel | None = None) -> GatewaySession:
        session = GatewaySession(identity=identity, channel=channel)
        self._sessions.add(session)
        self.dispatcher.attach(session)
        logger.info("Client connected session=%s identity=%s", session.session_id, identity)
        return session

    async def subscribe(self, session: GatewaySession, key: str) -> bool:
        """Start streaming ``key`` to ``session``.

        Returns:
            True if a new upstream connection was started, False if the key
            was already subscribed or the session is gone

        Raises:
            GatewayError: If the key cannot be parsed (nothing is registered)
        """
        if session.closed:
            return False
        if key in session:
            logger.debug("Session %s already subscribed to %s", session.session_id, key)
            return False

        sink, bind = self._make_sink(session, key)
        adapter = self._adapter_factory(key, sink)
        bind(adapter)
        session.insert(Subscription(key=key, adapter=adapter))
        logger.info("Subscribed session=%s stream=%s", session.session_id, key)

        if not await adapter.connect():
            # The adapter already reported why; drop the entry so a retry can subscribe again.
            # An unsubscribe and resubscribe during connect may have replaced it.
            await self._release(session, key, adapter)
            return False
        return True

    async def unsubscribe(self, session: GatewaySession, key: str) -> bool:
        """Stop streaming ``key``. Returns False if it was not subscribed."""
        released = await self._release(session, key)
        if released:
            logger.info("Unsubscribed session=%s stream=%s", session.session_id, key)
        return released

    async def close_session(self, session: GatewaySession) -> int:
        """Tear down a session and every subscription it still holds.

        Returns:
            Number of subscriptions released (0 if already torn down)
        """
        if session.closed:
            return 0
        session.closed = True

        released = 0
        for key in session.keys():
            if await self._release(session, key):
                released += 1

        self.dispatcher.detach(session)
        self._sessions.discard(session)
        logger.info("Client disconnected session=%s released=%d", session.session_id, released)
        return released

    async def shutdown(self) -> None:
        for session in self.sessions:
            await self.close_session(session)

    async def _release(
        self, session: GatewaySession, key: str, adapter: BaseStreamAdapter | None = None
    ) -> bool:
        subscription = session.get(key)
        if subscription is None:
            return False
        if adapter is not None and subscription.adapter is not adapter:
            return False
        try:
            await subscription.adapter.close()
        finally:
            subscription.state = SubscriptionState.CLOSED
            session.remove(key)
        return True

    def _make_sink(
        self, session: GatewaySession, key: str
    ) -> tuple[EventSink, Callable[[BaseStreamAdapter], None]]:
        """Build the event sink for one subscription and the hook that binds its adapter.

        Events are dropped unless the session still maps ``key`` to the bound adapter.
        """
        deliver = throttled(self.dispatcher.send, self.throttle_delay, self._clock)
        owner: list[BaseStreamAdapter] = []

        async def on_event(event: StreamEvent) -> None:
            subscription = session.get(key)
            if subscription is None or subscription.state is SubscriptionState.CLOSED:
                return
            if not owner or subscription.adapter is not owner[0]:
                return

            if event.is_data:
                if subscription.state is SubscriptionState.CONNECTING:
                    subscription.state = SubscriptionState.ACTIVE
                    logger.debug("Stream active session=%s stream=%s", session.session_id, key)
                await deliver(session, event.topic, event.payload)
                return

            reason = event.error.message if event.error is not None else "upstream error"
            logger.warning("Upstream error session=%s stream=%s err=%s", session.session_id, key, reason)
            await self._release(session, key, owner[0])
            await self.dispatcher.send(session, STREAM_ERROR_EVENT, {"key": key, "error": reason})

        return on_event, owner.append
