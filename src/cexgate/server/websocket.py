"""Client WebSocket channel: subscribe/unsubscribe intents and pushed events."""

from __future__ import annotations

import json
import logging

from aiohttp import WSMsgType, web

from ..errors import GatewayError
from ..relay.registry import SubscriptionRegistry
from ..relay.session import GatewaySession
from .keys import REGISTRY_KEY, SETTINGS_KEY

logger = logging.getLogger(__name__)

ERROR_EVENT = "error"


def client_token(request: web.Request) -> str | None:
    """Client identity from ``?token=`` or an ``Authorization: Bearer`` header."""
    token = request.query.get("token")
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


async def stream_handler(request: web.Request) -> web.WebSocketResponse:
    token = client_token(request)
    if token is None:
        raise web.HTTPUnauthorized(text="client token is required")

    settings = request.app[SETTINGS_KEY]
    registry = request.app[REGISTRY_KEY]

    ws = web.WebSocketResponse(heartbeat=settings.server.ws_heartbeat)
    await ws.prepare(request)

    session = registry.open_session(token, ws)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                await _handle_intent(registry, session, ws, msg.data)
            elif msg.type == WSMsgType.ERROR:
                logger.warning("Client socket error session=%s err=%s", session.session_id, ws.exception())
    finally:
        await registry.close_session(session)
    return ws


async def _handle_intent(
    registry: SubscriptionRegistry,
    session: GatewaySession,
    ws: web.WebSocketResponse,
    raw: str,
) -> None:
    try:
        message = json.loads(raw)
    except ValueError:
        await _reply_error(ws, "Message must be JSON")
        return
    if not isinstance(message, dict):
        await _reply_error(ws, "Message must be a JSON object")
        return

    event = message.get("event")
    key = message.get("data")
    if event not in ("subscribe", "unsubscribe"):
        await _reply_error(ws, f"Unknown event: {event!r}")
        return
    if not isinstance(key, str) or not key.strip():
        await _reply_error(ws, f"'{event}' requires a stream key")
        return

    try:
        if event == "subscribe":
            await registry.subscribe(session, key.strip())
        else:
            await registry.unsubscribe(session, key.strip())
    except GatewayError as exc:
        await _reply_error(ws, exc.message)


async def _reply_error(ws: web.WebSocketResponse, error: str) -> None:
    if ws.closed:
        return
    try:
        await ws.send_json({"event": ERROR_EVENT, "data": {"error": error}})
    except (ConnectionError, RuntimeError) as exc:
        logger.debug("Could not report intent error: %s", exc)
