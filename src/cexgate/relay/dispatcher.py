"""Addressed delivery of server events to connected clients."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from .session import GatewaySession

logger = logging.getLogger(__name__)


class Dispatcher:
    """Routes server-to-client events.

    Built once at process start and passed to whoever needs to push events.
    :meth:`send` targets a single session; :meth:`emit` targets every session
    that connected with a given identity. Delivery failures (client gone,
    socket closing) are logged and dropped.
    """

    def __init__(self) -> None:
        self._by_identity: dict[str, set[GatewaySession]] = defaultdict(set)
        self._closed = False

    def attach(self, session: GatewaySession) -> None:
        if self._closed:
            raise RuntimeError("dispatcher is closed")
        self._by_identity[session.identity].add(session)

    def detach(self, session: GatewaySession) -> None:
        sessions = self._by_identity.get(session.identity)
        if not sessions:
            return
        sessions.discard(session)
        if not sessions:
            del self._by_identity[session.identity]

    def sessions_for(self, identity: str) -> list[GatewaySession]:
        return list(self._by_identity.get(identity, ()))

    @property
    def session_count(self) -> int:
        return sum(len(s) for s in self._by_identity.values())

    async def send(self, session: GatewaySession, event: str, data: Any) -> bool:
        """Deliver one event to one session. Returns False if it was dropped."""
        channel = session.channel
        if session.closed or channel is None or channel.closed:
            logger.debug("Dropping %s for closed session %s", event, session.session_id)
            return False
        try:
            await channel.send_json({"event": event, "data": data})
        except (ConnectionError, RuntimeError) as exc:
            logger.debug("Dropping %s for session %s: %s", event, session.session_id, exc)
            return False
        return True

    async def emit(self, identity: str, event: str, data: Any) -> int:
        """Deliver an event to every session of ``identity``.

        Returns:
            Number of sessions that received it
        """
        delivered = 0
        for session in self.sessions_for(identity):
            if await self.send(session, event, data):
                delivered += 1
        if not delivered:
            logger.debug("No live session for %s, %s not delivered", identity, event)
        return delivered

    def close(self) -> None:
        self._closed = True
        self._by_identity.clear()
