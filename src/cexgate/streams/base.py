"""Base class for upstream push-stream adapters."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import aiohttp
from aiohttp import WSMsgType

from .events import EventSink, StreamEvent

logger = logging.getLogger(__name__)


class BaseStreamAdapter(ABC):
    """One upstream WebSocket connection for one subscription.

    Subclasses describe the exchange protocol: the URL, the optional
    subscribe handshake, the keepalive frame and how to pull ``(topic,
    payload)`` out of a message envelope. Everything else, including error
    reporting and shutdown, lives here.

    Adapters never reconnect on their own and never raise from
    :meth:`connect`; failures are emitted as ``ERROR`` events.
    """

    name: str = ""

    def __init__(
        self,
        stream: str,
        sink: EventSink,
        *,
        session: aiohttp.ClientSession | None = None,
        heartbeat: float = 20.0,
        connect_timeout: float = 10.0,
    ):
        """Initialize stream adapter.

        Args:
            stream: Exchange-native stream spec (see subclasses)
            sink: Async callback receiving every emitted event
            session: Shared HTTP session; a private one is created if omitted
            heartbeat: Keepalive interval in seconds
            connect_timeout: Upper bound for the connect handshake
        """
        self.stream = stream
        self._sink = sink
        self._session = session
        self._owns_session = session is None
        self.heartbeat = heartbeat
        self.connect_timeout = connect_timeout

        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._pinger: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def get_ws_url(self) -> str:
        """WebSocket endpoint for this stream."""
        ...

    def subscribe_message(self) -> dict[str, Any] | None:
        """Handshake sent right after the socket opens, if the exchange needs one."""
        return None

    def ping_message(self) -> str | None:
        """Application-level keepalive frame, if the exchange needs one."""
        return None

    @abstractmethod
    def parse_message(self, message: dict[str, Any]) -> tuple[str, Any] | None:
        """Extract ``(topic, payload)`` from a decoded envelope.

        Returns None for anything that is not market data (acks, pongs,
        unknown envelopes).
        """
        ...

    async def connect(self) -> bool:
        """Open the upstream socket, send the handshake and start reading.

        Returns:
            True when the stream is live, False when connecting failed (an
            ``ERROR`` event has been emitted in that case)
        """
        if self._closed:
            return False

        url = self.get_ws_url()
        try:
            if self._session is None:
                self._session = aiohttp.ClientSession()
            ws = await asyncio.wait_for(
                self._session.ws_connect(url, heartbeat=self.heartbeat),
                self.connect_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.warning("%s WS connect failed url=%s err=%s", self.name, url, _describe(exc))
            await self._emit(StreamEvent.failure(self.name, f"connect failed: {_describe(exc)}"))
            await self._release_session()
            return False

        if self._closed:
            # close() ran while the handshake was in flight
            await ws.close()
            await self._release_session()
            return False

        self._ws = ws
        subscription = self.subscribe_message()
        if subscription is not None:
            try:
                await ws.send_json(subscription)
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
                logger.warning("%s WS subscribe failed stream=%s err=%s", self.name, self.stream, _describe(exc))
                await self._emit(StreamEvent.failure(self.name, f"subscribe failed: {_describe(exc)}"))
                await self._shutdown_socket()
                return False

        logger.info("Connected to %s WS stream=%s", self.name, self.stream)
        self._reader = asyncio.create_task(self._read_loop(ws), name=f"{self.name}-ws-reader")
        if self.ping_message() is not None:
            self._pinger = asyncio.create_task(self._ping_loop(ws), name=f"{self.name}-ws-ping")
        return True

    async def close(self) -> None:
        """Stop the stream. No event is emitted once this returns."""
        if self._closed:
            return
        self._closed = True

        current = asyncio.current_task()
        for task in (self._pinger, self._reader):
            if task is not None and task is not current and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        await self._shutdown_socket()
        logger.info("Closed %s WS stream=%s", self.name, self.stream)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if self._closed:
                return
            if msg.type == WSMsgType.TEXT:
                await self._handle_text(msg.data)
            elif msg.type == WSMsgType.ERROR:
                exc = ws.exception()
                logger.error("%s WS error stream=%s err=%s", self.name, self.stream, _describe(exc))
                await self._emit(StreamEvent.failure(self.name, _describe(exc)))
                return

        if not self._closed:
            logger.warning("%s WS closed by upstream stream=%s code=%s", self.name, self.stream, ws.close_code)
            await self._emit(StreamEvent.failure(self.name, f"connection closed by upstream (code={ws.close_code})"))

    async def _ping_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        frame = self.ping_message()
        while not self._closed and not ws.closed:
            await asyncio.sleep(self.heartbeat)
            try:
                await ws.send_str(frame)
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
                logger.debug("%s WS ping failed: %s", self.name, _describe(exc))
                return

    async def _handle_text(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.debug("%s WS dropped non-JSON frame: %.80s", self.name, raw)
            return
        if not isinstance(message, dict):
            return

        parsed = self.parse_message(message)
        if parsed is None:
            return
        topic, payload = parsed
        await self._emit(StreamEvent.data(self.name, topic, payload))

    async def _emit(self, event: StreamEvent) -> None:
        if self._closed:
            return
        await self._sink(event)

    async def _shutdown_socket(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        await self._release_session()

    async def _release_session(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "unknown error"
    detail = str(exc).strip()
    if detail:
        return f"{exc.__class__.__name__}: {detail}"
    return repr(exc)
