"""cexgate: market-data relay and multi-exchange aggregation gateway."""

from .settings import Settings
from .exchanges import ExchangeClient, ExchangeCredentials, create_exchange_client

__all__ = [
    "Settings",
    "ExchangeClient",
    "ExchangeCredentials",
    "create_exchange_client",
]
