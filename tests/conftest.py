"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from cexgate.exchanges.protocol import ExchangeCredentials
from cexgate.streams.events import StreamEvent


class FakeExchangeClient:
    """In-memory stand-in for a ccxt async exchange."""

    def __init__(
        self,
        exchange_id: str = "binance",
        *,
        markets: dict[str, Any] | None = None,
        tickers: dict[str, Any] | None = None,
        balance: dict[str, Any] | None = None,
        trades: dict[str, list[dict[str, Any]]] | None = None,
        errors: dict[str, BaseException] | None = None,
        symbol_errors: dict[str, BaseException] | None = None,
        delay: float = 0.0,
    ):
        self.id = exchange_id
        self.markets = markets or {}
        self.tickers = tickers or {}
        self.balance = balance or {}
        self.trades = trades or {}
        self.errors = errors or {}
        self.symbol_errors = symbol_errors or {}
        self.delay = delay
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if self.delay:
            await asyncio.sleep(self.delay)
        if method in self.errors:
            raise self.errors[method]

    async def load_markets(self, reload: bool = False) -> dict[str, Any]:
        await self._enter("load_markets")
        return self.markets

    async def fetch_tickers(self, symbols: list[str] | None = None) -> dict[str, Any]:
        await self._enter("fetch_tickers", symbols)
        return {s: dict(self.tickers[s]) for s in symbols or [] if s in self.tickers}

    async def fetch_balance(self, params: dict[str, Any] | None = None) -> dict[str, Any]:
        await self._enter("fetch_balance", params)
        return dict(self.balance)

    async def fetch_my_trades(self, symbol: str | None = None, since: int | None = None, limit: int | None = None):
        await self._enter("fetch_my_trades", symbol, since)
        if symbol in self.symbol_errors:
            raise self.symbol_errors[symbol]
        return [dict(t) for t in self.trades.get(symbol, [])]

    async def close(self) -> None:
        self.closed = True


class FakeStreamAdapter:
    """Stream adapter double that counts lifecycle calls and lets tests push events."""

    instances: list["FakeStreamAdapter"] = []

    def __init__(self, key: str, sink, *, connect_ok: bool = True, gate: asyncio.Event | None = None):
        self.key = key
        self.sink = sink
        self.connect_ok = connect_ok
        self.gate = gate
        self.connect_calls = 0
        self.close_calls = 0
        self._closed = False
        FakeStreamAdapter.instances.append(self)

    @property
    def closed(self) -> bool:
        return self._closed

    async def connect(self) -> bool:
        self.connect_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if not self.connect_ok:
            await self.sink(StreamEvent.failure("fake", "connect failed: refused"))
            return False
        return True

    async def close(self) -> None:
        self.close_calls += 1
        self._closed = True

    async def push(self, topic: str, payload: Any) -> None:
        if not self._closed:
            await self.sink(StreamEvent.data("fake", topic, payload))

    async def fail(self, error: str) -> None:
        if not self._closed:
            await self.sink(StreamEvent.failure("fake", error))


class FakeChannel:
    """Downstream channel that records what it was sent."""

    def __init__(self, *, closed: bool = False, error: BaseException | None = None):
        self.closed = closed
        self.error = error
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, data: Any) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(data)

    def events(self, name: str) -> list[Any]:
        return [m["data"] for m in self.sent if m["event"] == name]


class ManualClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def api_key():
    """Test API key."""
    return "test_api_key_123456"


@pytest.fixture
def api_secret():
    """Test API secret."""
    return "test_api_secret_789012"


@pytest.fixture
def passphrase():
    """Test passphrase."""
    return "test_passphrase_345678"


@pytest.fixture
def credentials(api_key, api_secret):
    """Credentials without a passphrase."""
    return ExchangeCredentials(api_key=api_key, api_secret=api_secret)


@pytest.fixture
def fake_client_class():
    return FakeExchangeClient


@pytest.fixture
def fake_channel_class():
    return FakeChannel


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def fake_adapters():
    """Adapter factory recording every adapter it builds."""
    FakeStreamAdapter.instances = []
    failing: set[str] = set()
    gates: dict[str, asyncio.Event] = {}

    def factory(key: str, sink):
        if not key or key.startswith("bogus:"):
            from cexgate.errors import UnsupportedExchange
            raise UnsupportedExchange(key.split(":", 1)[0])
        return FakeStreamAdapter(key, sink, connect_ok=key not in failing, gate=gates.pop(key, None))

    factory.instances = FakeStreamAdapter.instances
    factory.failing = failing
    factory.gates = gates
    return factory


@pytest.fixture
def sample_trades():
    """Trades keyed by exchange, deliberately out of timestamp order."""
    return {
        "binance": [
            {"id": "b1", "symbol": "BTC/USDT", "side": "buy", "amount": 0.1, "price": 45000.0, "timestamp": 3000},
            {"id": "b2", "symbol": "BTC/USDT", "side": "sell", "amount": 0.1, "price": 46000.0, "timestamp": 1000},
        ],
        "bybit": [
            {"id": "y1", "symbol": "BTC/USDT", "side": "buy", "amount": 0.2, "price": 45500.0, "timestamp": 2000},
        ],
    }
