"""Tests for the aggregation service and its push notifications."""

import ccxt.async_support as ccxt
import pytest

from cexgate.aggregation.engine import AggregationEngine
from cexgate.aggregation.service import (
    SYNC_TRANSACTIONS_EVENT,
    UPDATE_PORTFOLIO_EVENT,
    AggregationService,
    parse_since,
)
from cexgate.errors import InvalidRequest, UnsupportedExchange
from cexgate.exchanges.factory import ValidationStatus
from cexgate.relay.dispatcher import Dispatcher
from cexgate.relay.session import GatewaySession


@pytest.fixture
def clients(fake_client_class, sample_trades):
    return {
        "binance": fake_client_class(
            "binance",
            markets={"BTC/USDT": {}},
            tickers={"BTC/USDT": {"last": 45000.0}},
            trades={"BTC/USDT": sample_trades["binance"]},
        ),
        "bybit": fake_client_class("bybit", trades={"BTC/USDT": sample_trades["bybit"]}),
        "okx": fake_client_class("okx", errors={"fetch_balance": ccxt.AuthenticationError("bad key")}),
    }


@pytest.fixture
def service(clients):
    created = []

    def factory(exchange, credentials=None):
        created.append(exchange)
        return clients[exchange]

    engine = AggregationEngine(factory, call_timeout=1.0)
    svc = AggregationService(engine, Dispatcher())
    svc.created = created
    return svc


@pytest.fixture
def client_channel(service, fake_channel_class):
    """A connected client session for identity ``user-1``."""
    channel = fake_channel_class()
    service.dispatcher.attach(GatewaySession("user-1", channel))
    return channel


class TestParseSince:
    """Tests for parse_since."""

    def test_epoch_millis(self):
        assert parse_since(1700000000000) == 1700000000000
        assert parse_since(1.7e12) == 1700000000000
        assert parse_since("1700000000000") == 1700000000000

    def test_iso_strings(self):
        assert parse_since("2024-01-01T00:00:00Z") == 1704067200000
        assert parse_since("2024-01-01T00:00:00") == 1704067200000
        assert parse_since("2024-01-01T02:00:00+02:00") == 1704067200000

    @pytest.mark.parametrize(
        "value",
        [None, True, "", "yesterday", [1], "1e400", "-inf", "NaN", float("inf"), float("nan")],
    )
    def test_rejected(self, value):
        with pytest.raises(InvalidRequest):
            parse_since(value)


class TestSyncTransactions:
    """Tests for the sync flow and its notification."""

    @pytest.mark.asyncio
    async def test_success_pushed_to_client(self, service, client_channel, credentials):
        """The merged trades are pushed to the requesting client, newest first."""
        result = await service.sync_transactions(
            "1000", ["BTC/USDT"], ["binance", "bybit"], {"binance": credentials}, "user-1"
        )

        assert [t["id"] for t in result.data] == ["b1", "y1", "b2"]
        pushed = client_channel.events(SYNC_TRANSACTIONS_EVENT)
        assert len(pushed) == 1
        assert pushed[0]["status"] == "success"
        assert pushed[0]["data"] == result.data

    @pytest.mark.asyncio
    async def test_empty_symbols_short_circuits(self, service, client_channel):
        """No symbols means no exchange call and no push."""
        result = await service.sync_transactions(0, [], ["binance"], {}, "user-1")

        assert result is None
        assert service.created == []
        assert client_channel.sent == []

    @pytest.mark.asyncio
    async def test_bad_since_pushes_error(self, service, client_channel):
        with pytest.raises(InvalidRequest):
            await service.sync_transactions("yesterday", ["BTC/USDT"], None, {}, "user-1")

        assert client_channel.events(SYNC_TRANSACTIONS_EVENT) == [{"status": "error"}]

    @pytest.mark.asyncio
    async def test_unsupported_exchange_pushes_error(self, service, client_channel):
        with pytest.raises(UnsupportedExchange):
            await service.sync_transactions(0, ["BTC/USDT"], ["kraken"], {}, "user-1")

        assert client_channel.events(SYNC_TRANSACTIONS_EVENT) == [{"status": "error"}]

    @pytest.mark.asyncio
    async def test_other_clients_not_notified(self, service, client_channel, fake_channel_class):
        other = fake_channel_class()
        service.dispatcher.attach(GatewaySession("user-2", other))

        await service.sync_transactions(0, ["BTC/USDT"], ["binance"], {}, "user-1")

        assert other.sent == []


class TestNotifications:
    """Tests for update-portfolio."""

    @pytest.mark.asyncio
    async def test_update_portfolio_default_true(self, service, client_channel):
        assert await service.update_portfolio("user-1") is True
        assert client_channel.events(UPDATE_PORTFOLIO_EVENT) == [{"success": True}]

    @pytest.mark.asyncio
    async def test_update_portfolio_false_honoured(self, service, client_channel):
        """An explicit false status is forwarded as-is."""
        assert await service.update_portfolio("user-1", False) is False
        assert client_channel.events(UPDATE_PORTFOLIO_EVENT) == [{"success": False}]

    @pytest.mark.asyncio
    async def test_update_without_client_is_silent(self, service):
        assert await service.update_portfolio("nobody") is True


class TestPassThrough:
    """Tests for the request/response operations."""

    @pytest.mark.asyncio
    async def test_fetch_ticker(self, service):
        result = await service.fetch_ticker(["BTC/USDT", "FAKE/XYZ"])
        assert result.to_response() == {
            "success": True,
            "data": {"BTC/USDT": {"last": 45000.0, "source_exchange": "binance"}},
        }

    @pytest.mark.asyncio
    async def test_fetch_portfolio_partial(self, service, credentials):
        result = await service.fetch_portfolio(["binance", "okx"], {"binance": credentials, "okx": credentials})
        assert result.failed == {"okx": "bad key"}

    @pytest.mark.asyncio
    async def test_validate_uses_engine_factory(self, service, credentials, clients):
        result = await service.validate_credentials("okx", credentials)

        assert result.status is ValidationStatus.AUTHENTICATION_FAILED
        assert service.created == ["okx"]
        assert clients["okx"].closed
