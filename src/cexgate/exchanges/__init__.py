"""Request/response exchange clients."""

from .protocol import ExchangeClient, ExchangeCredentials
from .normalization import extract_base_symbol, to_market_symbol, to_stream_symbol
from .factory import (
    SUPPORTED_EXCHANGES,
    ValidationResult,
    ValidationStatus,
    create_exchange_client,
    resolve_exchange,
    validate_credentials,
)

__all__ = [
    "ExchangeClient",
    "ExchangeCredentials",
    "extract_base_symbol",
    "to_market_symbol",
    "to_stream_symbol",
    "SUPPORTED_EXCHANGES",
    "ValidationResult",
    "ValidationStatus",
    "create_exchange_client",
    "resolve_exchange",
    "validate_credentials",
]
