"""Subscription key parsing and adapter construction."""

from __future__ import annotations

from typing import Type

import aiohttp

from ..errors import InvalidRequest, UnsupportedExchange
from ..exchanges.normalization import to_stream_symbol
from .base import BaseStreamAdapter
from .binance import BinanceStreamAdapter
from .bybit import BybitStreamAdapter
from .events import EventSink
from .okx import OKXStreamAdapter

STREAM_ADAPTERS: dict[str, Type[BaseStreamAdapter]] = {
    "binance": BinanceStreamAdapter,
    "okx": OKXStreamAdapter,
    "bybit": BybitStreamAdapter,
}


def parse_stream_key(key: str, default_exchange: str = "binance") -> tuple[str, str]:
    """Split ``exchange:stream`` into its parts.

    Keys without a known exchange prefix belong to ``default_exchange``, so
    raw Binance paths like ``/stream?streams=btcusdt@ticker`` keep working.

    Raises:
        InvalidRequest: If the key or its stream part is empty
        UnsupportedExchange: If the prefix names an unknown exchange
    """
    if not isinstance(key, str) or not key.strip():
        raise InvalidRequest("Stream key must be a non-empty string")
    key = key.strip()

    prefix, sep, rest = key.partition(":")
    if sep and not prefix.startswith("/"):
        exchange = prefix.lower()
        if exchange not in STREAM_ADAPTERS:
            raise UnsupportedExchange(prefix, list(STREAM_ADAPTERS))
        stream = rest.strip()
    else:
        exchange, stream = default_exchange, key

    if not stream:
        raise InvalidRequest(f"Stream key {key!r} has no stream")
    return exchange, stream


# Ticker channel names differ per venue
TICKER_CHANNELS = {"binance": "ticker", "okx": "tickers", "bybit": "tickers"}


def build_stream_key(exchange: str, symbol: str, channel: str | None = None) -> str:
    """Compose a stream key from a symbol and a channel name.

    Without a channel the exchange's ticker channel is used.

    >>> build_stream_key("binance", "BTC/USDT", "ticker")
    'binance:btcusdt@ticker'
    >>> build_stream_key("okx", "BTC/USDT", "tickers")
    'okx:tickers.BTC-USDT'
    """
    exchange = exchange.lower()
    if exchange not in STREAM_ADAPTERS:
        raise UnsupportedExchange(exchange, list(STREAM_ADAPTERS))
    market = to_stream_symbol(exchange, symbol)
    channel = channel or TICKER_CHANNELS[exchange]
    if exchange == "binance":
        return f"binance:{market}@{channel}"
    return f"{exchange}:{channel}.{market}"


def create_stream_adapter(
    key: str,
    sink: EventSink,
    *,
    default_exchange: str = "binance",
    session: aiohttp.ClientSession | None = None,
    heartbeat: float = 20.0,
    connect_timeout: float = 10.0,
) -> BaseStreamAdapter:
    """Create an unconnected adapter for a subscription key."""
    exchange, stream = parse_stream_key(key, default_exchange)
    adapter_class = STREAM_ADAPTERS[exchange]
    return adapter_class(
        stream,
        sink,
        session=session,
        heartbeat=heartbeat,
        connect_timeout=connect_timeout,
    )
