from __future__ import annotations

import logging

from aiohttp import WSCloseCode, web

from ..di import AppContainer
from .keys import REGISTRY_KEY, SERVICE_KEY, SETTINGS_KEY
from .middleware import error_middleware
from .routes import routes
from .websocket import stream_handler

logger = logging.getLogger(__name__)


def create_app(container: AppContainer) -> web.Application:
    """Build the gateway's aiohttp application from a container."""
    app = web.Application(middlewares=[error_middleware])
    app[SETTINGS_KEY] = container.settings
    app[REGISTRY_KEY] = container.registry
    app[SERVICE_KEY] = container.service

    app.add_routes(routes)
    app.router.add_get("/ws", stream_handler)
    app.on_shutdown.append(_close_client_sessions)
    return app


async def _close_client_sessions(app: web.Application) -> None:
    registry = app[REGISTRY_KEY]
    sessions = registry.sessions
    logger.info("Closing %d client sessions", len(sessions))
    for session in sessions:
        channel = session.channel
        if isinstance(channel, web.WebSocketResponse) and not channel.closed:
            await channel.close(code=WSCloseCode.GOING_AWAY, message=b"server shutdown")
    await registry.shutdown()
