from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import web

from .di import AppContainer
from .server.app import create_app

logger = logging.getLogger(__name__)


async def run(container: AppContainer) -> None:
    """Serve the gateway until ``container.shutdown`` is set or a signal arrives."""
    logger.info("runtime starting")
    logger.debug("settings=%s", container.settings.redacted())

    server = container.settings.server
    runner = web.AppRunner(create_app(container))
    await runner.setup()
    site = web.TCPSite(runner, server.host, server.port)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, container.shutdown.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handlers
            pass

    try:
        await site.start()
        logger.info("Gateway listening on %s:%s", server.host, server.port)
        await container.shutdown.wait()
    finally:
        await runner.cleanup()
        container.dispatcher.close()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass
        logger.info("runtime stopped")
