"""Factory for creating exchange client instances."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import ccxt.async_support as ccxt

from ..errors import UnsupportedExchange
from .protocol import ExchangeClient, ExchangeCredentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeSpec:
    """How to build a ccxt client for one supported exchange."""

    name: str
    client_class: Callable[[dict[str, Any]], Any]
    options: dict[str, Any] = field(default_factory=dict)
    requires_passphrase: bool = False


SUPPORTED_EXCHANGES: dict[str, ExchangeSpec] = {
    "binance": ExchangeSpec(
        "binance",
        ccxt.binance,
        {"enableRateLimit": True, "adjustForTimeDifference": True},
    ),
    "okx": ExchangeSpec(
        "okx",
        ccxt.okx,
        {"enableRateLimit": True},
        requires_passphrase=True,
    ),
    "bybit": ExchangeSpec(
        "bybit",
        ccxt.bybit,
        {"enableRateLimit": True, "adjustForTimeDifference": True},
    ),
}


ClientFactory = Callable[..., ExchangeClient]


def resolve_exchange(exchange: str) -> ExchangeSpec:
    """Look up a supported exchange by case-insensitive name.

    Raises:
        UnsupportedExchange: If the name is not in the supported set
    """
    spec = SUPPORTED_EXCHANGES.get(exchange.lower()) if exchange else None
    if spec is None:
        raise UnsupportedExchange(exchange, list(SUPPORTED_EXCHANGES))
    return spec


def create_exchange_client(
    exchange: str,
    credentials: ExchangeCredentials | None = None,
    *,
    sandbox: bool = False,
    proxy_url: str | None = None,
    **options: Any,
) -> ExchangeClient:
    """Create a request/response client for an exchange.

    A missing passphrase for an exchange that needs one is not an error
    here; ccxt reports it as an authentication error on the first private
    call.

    Args:
        exchange: Exchange name (binance, okx, bybit)
        credentials: API credentials, or None for public endpoints only
        sandbox: Use sandbox/testnet environment
        proxy_url: HTTP proxy for REST calls
        **options: Additional ccxt options

    Returns:
        Configured ccxt async exchange instance

    Raises:
        UnsupportedExchange: If exchange is not supported
    """
    spec = resolve_exchange(exchange)

    config = dict(spec.options)
    config.update(options)

    if credentials is not None:
        ccxt_credentials = credentials.to_ccxt()
        if not spec.requires_passphrase:
            ccxt_credentials.pop("password", None)
        config.update(ccxt_credentials)

    if proxy_url:
        config["aiohttp_proxy"] = proxy_url

    client = spec.client_class(config)
    if sandbox:
        client.set_sandbox_mode(True)
    return client


class ValidationStatus(str, Enum):
    """Outcome of a credential probe."""

    VALID = "valid"
    AUTHENTICATION_FAILED = "authentication_failed"
    OTHER_FAILURE = "other_failure"

    @property
    def http_status(self) -> int:
        return {
            ValidationStatus.VALID: 200,
            ValidationStatus.AUTHENTICATION_FAILED: 401,
            ValidationStatus.OTHER_FAILURE: 500,
        }[self]


@dataclass(frozen=True)
class ValidationResult:
    status: ValidationStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ValidationStatus.VALID


async def validate_credentials(
    exchange: str,
    credentials: ExchangeCredentials,
    *,
    timeout: float = 30.0,
    client_factory: ClientFactory = create_exchange_client,
) -> ValidationResult:
    """Probe credentials with a balance read.

    This is the only call site that distinguishes authentication errors
    from every other failure.

    Raises:
        UnsupportedExchange: If exchange is not supported
    """
    resolve_exchange(exchange)
    client = client_factory(exchange, credentials)
    try:
        await asyncio.wait_for(client.fetch_balance(), timeout)
    except ccxt.AuthenticationError as exc:
        logger.info("Credential validation rejected for %s: %s", exchange, exc)
        return ValidationResult(ValidationStatus.AUTHENTICATION_FAILED, "Invalid API key or secret")
    except asyncio.TimeoutError:
        logger.warning("Credential validation timed out for %s after %.1fs", exchange, timeout)
        return ValidationResult(ValidationStatus.OTHER_FAILURE, f"{exchange} did not respond within {timeout:g}s")
    except Exception as exc:
        logger.error("Error validating API credentials for %s: %s", exchange, exc)
        return ValidationResult(
            ValidationStatus.OTHER_FAILURE,
            str(exc) or "An error occurred while validating the API key",
        )
    finally:
        await client.close()

    return ValidationResult(ValidationStatus.VALID)
