"""aiohttp front end: aggregation routes and the client WebSocket."""

from .app import create_app

__all__ = ["create_app"]
