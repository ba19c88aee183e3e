from __future__ import annotations

import logging

from aiohttp import web

from ..errors import GatewayError

logger = logging.getLogger(__name__)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Render gateway errors as ``{"success": false, "error": ...}``."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except GatewayError as exc:
        logger.warning("%s %s failed: %s", request.method, request.path, exc.message)
        return web.json_response({"success": False, "error": exc.message}, status=exc.status)
    except Exception as exc:
        logger.error("Error in %s route: %s", request.path, exc, exc_info=True)
        return web.json_response(
            {"success": False, "error": str(exc) or "Internal server error"},
            status=500,
        )
