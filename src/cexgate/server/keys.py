from __future__ import annotations

from aiohttp import web

from ..aggregation.service import AggregationService
from ..relay.registry import SubscriptionRegistry
from ..settings import Settings

SETTINGS_KEY = web.AppKey("settings", Settings)
REGISTRY_KEY = web.AppKey("registry", SubscriptionRegistry)
SERVICE_KEY = web.AppKey("service", AggregationService)
