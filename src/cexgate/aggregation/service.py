"""Client-facing aggregation operations and their push notifications."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Mapping

from ..errors import InvalidRequest
from ..exchanges.factory import ValidationResult, validate_credentials
from ..exchanges.protocol import ExchangeCredentials
from ..relay.dispatcher import Dispatcher
from .engine import AggregationEngine, MergedResult
from .operations import FetchPortfolio, FetchTicker, FetchTransactions, SyncTransactions

logger = logging.getLogger(__name__)

SYNC_TRANSACTIONS_EVENT = "sync-transactions"
UPDATE_PORTFOLIO_EVENT = "update-portfolio"

Credentials = Mapping[str, ExchangeCredentials]


def _epoch_millis(number: float) -> int:
    if not math.isfinite(number):
        raise InvalidRequest(f"'since' must be a finite timestamp, got {number!r}")
    return int(number)


def parse_since(value: Any) -> int:
    """Convert a ``since`` value to epoch milliseconds.

    Accepts epoch milliseconds (number or numeric string) and ISO-8601
    strings; naive datetimes are taken as UTC.

    Raises:
        InvalidRequest: If the value cannot be interpreted
    """
    if isinstance(value, bool) or value is None:
        raise InvalidRequest("'since' must be a timestamp")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _epoch_millis(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            pass
        else:
            return _epoch_millis(number)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidRequest(f"'since' is not a valid timestamp: {value!r}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    raise InvalidRequest("'since' must be a timestamp")


class AggregationService:
    """Entry points behind the aggregation routes and CLI commands."""

    def __init__(
        self,
        engine: AggregationEngine,
        dispatcher: Dispatcher,
        *,
        validation_timeout: float | None = None,
    ):
        self.engine = engine
        self.dispatcher = dispatcher
        self.validation_timeout = validation_timeout or engine.call_timeout

    async def fetch_ticker(self, symbols: list[str], exchanges: list[str] | None = None) -> MergedResult:
        return await self.engine.run(FetchTicker(symbols), exchanges)

    async def fetch_portfolio(
        self,
        exchanges: list[str] | None,
        credentials: Credentials,
    ) -> MergedResult:
        return await self.engine.run(FetchPortfolio(), exchanges, credentials)

    async def fetch_transactions(
        self,
        symbol: str,
        exchanges: list[str] | None,
        credentials: Credentials,
    ) -> MergedResult:
        return await self.engine.run(FetchTransactions(symbol), exchanges, credentials)

    async def sync_transactions(
        self,
        since: Any,
        symbols: list[str],
        exchanges: list[str] | None,
        credentials: Credentials,
        client_token: str,
    ) -> MergedResult | None:
        """Fetch trades since ``since`` and push them to ``client_token``.

        Returns None without contacting any exchange when ``symbols`` is
        empty. Any failure of the request as a whole pushes an error status
        before propagating.
        """
        try:
            since_ms = parse_since(since)
            if not symbols:
                return None
            result = await self.engine.run(SyncTransactions(symbols, since_ms), exchanges, credentials)
        except Exception:
            await self.notify_sync_failure(client_token)
            raise

        logger.info("Synced %d trades for %s", len(result.data), client_token)
        await self.dispatcher.emit(
            client_token,
            SYNC_TRANSACTIONS_EVENT,
            {"status": "success", "data": result.data},
        )
        return result

    async def notify_sync_failure(self, client_token: str) -> None:
        await self.dispatcher.emit(client_token, SYNC_TRANSACTIONS_EVENT, {"status": "error"})

    async def update_portfolio(self, client_token: str, status: bool = True) -> bool:
        """Tell a client that its portfolio changed."""
        await self.dispatcher.emit(client_token, UPDATE_PORTFOLIO_EVENT, {"success": status})
        return status

    async def validate_credentials(
        self,
        exchange: str,
        credentials: ExchangeCredentials,
    ) -> ValidationResult:
        return await validate_credentials(
            exchange,
            credentials,
            timeout=self.validation_timeout,
            client_factory=self.engine.client_factory,
        )
