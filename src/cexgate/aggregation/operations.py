"""Aggregation operations: tickers, balances and trade history."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from ..exchanges.normalization import to_market_symbol
from ..exchanges.protocol import ExchangeClient
from .engine import AggregationOperation, ExchangeOutcome

logger = logging.getLogger(__name__)

SOURCE_FIELD = "source_exchange"


def tag_record(record: Any, exchange: str) -> dict[str, Any]:
    """Copy a record and stamp it with the exchange that produced it."""
    tagged = dict(record) if isinstance(record, dict) else {"value": record}
    tagged[SOURCE_FIELD] = exchange
    return tagged


def sort_by_timestamp(records: Iterable[dict[str, Any]], *, descending: bool = False) -> list[dict[str, Any]]:
    """Order records by their ``timestamp``.

    Records without a numeric timestamp (failure placeholders included) keep
    their relative order and go after every timestamped record, whichever
    direction is requested.
    """
    timed: list[dict[str, Any]] = []
    untimed: list[dict[str, Any]] = []
    for record in records:
        ts = record.get("timestamp")
        if isinstance(ts, (int, float)) and not isinstance(ts, bool):
            timed.append(record)
        else:
            untimed.append(record)
    timed.sort(key=lambda r: r["timestamp"], reverse=descending)
    return timed + untimed


class FetchTicker(AggregationOperation):
    """Latest tickers for a set of symbols.

    Symbols unknown to an exchange's market list are dropped before the
    query instead of failing it. Merged data is ``{symbol: ticker}``; when
    several exchanges quote a symbol, the first one requested wins.
    """

    name = "fetch_ticker"

    def __init__(self, symbols: list[str]):
        self.symbols = list(dict.fromkeys(to_market_symbol(s) for s in symbols))

    async def call(self, client: ExchangeClient, exchange: str) -> dict[str, Any]:
        markets = await client.load_markets()
        known = [symbol for symbol in self.symbols if symbol in markets]
        dropped = [symbol for symbol in self.symbols if symbol not in markets]
        if dropped:
            logger.info("Ignoring symbols unknown to %s: %s", exchange, ", ".join(dropped))
        if not known:
            return {}
        return await client.fetch_tickers(known)

    def merge(self, outcomes: list[ExchangeOutcome]) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for outcome in outcomes:
            if not outcome.ok:
                continue
            for symbol, ticker in (outcome.value or {}).items():
                merged.setdefault(symbol, tag_record(ticker, outcome.exchange))
        return merged


class FetchPortfolio(AggregationOperation):
    """Account balances per exchange, zero balances omitted.

    Merged data is ``{exchange: balance}``; a failed exchange maps to
    ``{"error": reason}``.
    """

    name = "fetch_portfolio"

    def __init__(self, params: dict[str, Any] | None = None):
        self.params = {"omitZeroBalances": True} if params is None else dict(params)

    async def call(self, client: ExchangeClient, exchange: str) -> dict[str, Any]:
        return await client.fetch_balance(dict(self.params))

    def merge(self, outcomes: list[ExchangeOutcome]) -> dict[str, Any]:
        return {
            outcome.exchange: (
                tag_record(outcome.value, outcome.exchange)
                if outcome.ok
                else {"error": outcome.error}
            )
            for outcome in outcomes
        }


class FetchTransactions(AggregationOperation):
    """Trade history for one symbol, oldest first.

    A failed exchange contributes a single ``{"error", "failed_exchange"}``
    placeholder, which sorts after the real trades.
    """

    name = "fetch_transactions"

    def __init__(self, symbol: str):
        self.symbol = symbol

    async def call(self, client: ExchangeClient, exchange: str) -> list[dict[str, Any]]:
        return await client.fetch_my_trades(self.symbol)

    def merge(self, outcomes: list[ExchangeOutcome]) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for outcome in outcomes:
            if outcome.ok:
                records.extend(tag_record(trade, outcome.exchange) for trade in outcome.value or [])
            else:
                records.append({"error": outcome.error, "failed_exchange": outcome.exchange})
        return sort_by_timestamp(records)


class SyncTransactions(AggregationOperation):
    """Trades since a point in time across several symbols, newest first.

    Symbols are fetched concurrently; a failing symbol contributes nothing
    and a failing exchange contributes nothing.
    """

    name = "sync_transactions"

    def __init__(self, symbols: list[str], since: int):
        self.symbols = list(dict.fromkeys(symbols))
        self.since = since

    async def call(self, client: ExchangeClient, exchange: str) -> list[dict[str, Any]]:
        results = await asyncio.gather(
            *(client.fetch_my_trades(symbol, self.since) for symbol in self.symbols),
            return_exceptions=True,
        )
        trades: list[dict[str, Any]] = []
        for symbol, result in zip(self.symbols, results):
            if isinstance(result, BaseException):
                logger.warning("Error fetching %s trades for %s: %s", symbol, exchange, result)
                continue
            trades.extend(result or [])
        return trades

    def merge(self, outcomes: list[ExchangeOutcome]) -> list[dict[str, Any]]:
        records = [
            tag_record(trade, outcome.exchange)
            for outcome in outcomes
            if outcome.ok
            for trade in outcome.value or []
        ]
        # Newest first, unlike FetchTransactions
        return sort_by_timestamp(records, descending=True)
