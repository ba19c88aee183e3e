"""Exchange client construction bound to deployment settings."""

from __future__ import annotations

import logging

from .factory import ClientFactory, create_exchange_client, resolve_exchange
from .protocol import ExchangeCredentials
from ..settings import Settings

logger = logging.getLogger(__name__)


def create_client_factory(settings: Settings) -> ClientFactory:
    """Return a client factory that applies per-exchange settings.

    Sandbox mode, proxy and extra ccxt options come from configuration;
    credentials always come from the caller.
    """

    def factory(exchange: str, credentials: ExchangeCredentials | None = None):
        spec = resolve_exchange(exchange)
        exchange_config = settings.exchange(spec.name)
        return create_exchange_client(
            spec.name,
            credentials,
            sandbox=exchange_config.sandbox,
            proxy_url=settings.proxy.proxy_url,
            **exchange_config.options,
        )

    return factory


def credentials_from_settings(
    settings: Settings,
    exchanges: list[str] | None = None,
) -> dict[str, ExchangeCredentials]:
    """Collect configured credentials, optionally limited to ``exchanges``."""
    wanted = {name.lower() for name in exchanges} if exchanges else None
    credentials: dict[str, ExchangeCredentials] = {}

    for exchange_name, exchange_config in settings.exchanges.items():
        if wanted is not None and exchange_name not in wanted:
            continue
        if not exchange_config.credentials:
            logger.warning("Exchange %s has no credentials configured, skipping", exchange_name)
            continue
        credentials[exchange_name] = exchange_config.credentials

    return credentials
