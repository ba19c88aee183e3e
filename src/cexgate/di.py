from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING

from .aggregation.engine import AggregationEngine
from .aggregation.service import AggregationService
from .exchanges.factory import ClientFactory
from .exchanges.init import create_client_factory
from .relay.dispatcher import Dispatcher
from .relay.registry import AdapterFactory, SubscriptionRegistry
from .streams.factory import create_stream_adapter

if TYPE_CHECKING:
    from .settings import Settings


@dataclass(slots=True)
class AppContainer:
    settings: "Settings"
    dispatcher: Dispatcher
    registry: SubscriptionRegistry
    engine: AggregationEngine
    service: AggregationService
    shutdown: asyncio.Event = field(default_factory=asyncio.Event)


def build_container(
    settings: "Settings",
    *,
    client_factory: ClientFactory | None = None,
    adapter_factory: AdapterFactory | None = None,
) -> AppContainer:
    """Wire the gateway's components from settings.

    The factories can be replaced to run without touching real exchanges.
    """
    relay = settings.relay
    if adapter_factory is None:
        adapter_factory = partial(
            create_stream_adapter,
            default_exchange=relay.default_stream_exchange,
            heartbeat=relay.upstream_heartbeat,
            connect_timeout=relay.connect_timeout,
        )

    dispatcher = Dispatcher()
    registry = SubscriptionRegistry(
        dispatcher,
        throttle_delay=relay.throttle_delay,
        adapter_factory=adapter_factory,
    )
    engine = AggregationEngine(
        client_factory or create_client_factory(settings),
        default_exchange=settings.aggregation.default_exchange,
        call_timeout=settings.aggregation.call_timeout,
    )
    return AppContainer(
        settings=settings,
        dispatcher=dispatcher,
        registry=registry,
        engine=engine,
        service=AggregationService(engine, dispatcher),
    )
