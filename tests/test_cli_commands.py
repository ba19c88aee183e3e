"""Tests for CLI command parsing and basic functionality."""

from __future__ import annotations

from unittest.mock import patch

import ccxt.async_support as ccxt
import pytest
from typer.testing import CliRunner

from cexgate.app import main
from cexgate.cli import app
from cexgate.di import build_container
from cexgate.settings import Settings


@pytest.fixture
def cli_clients(fake_client_class, sample_trades):
    return {
        "binance": fake_client_class(
            "binance",
            markets={"BTC/USDT": {}},
            tickers={"BTC/USDT": {"last": 45000.0, "bid": 44999.5, "ask": 45000.5, "percentage": 1.25}},
            balance={"total": {"BTC": 0.5, "ETH": 0.0}, "free": {"BTC": 0.4}, "used": {"BTC": 0.1}},
            trades={"BTC/USDT": sample_trades["binance"]},
        ),
        "okx": fake_client_class("okx", errors={"fetch_balance": ccxt.AuthenticationError("bad key")}),
    }


@pytest.fixture
def cli_container(cli_clients):
    settings = Settings.model_validate({
        "exchanges": {
            "binance": {"credentials": {"api_key": "k", "api_secret": "s"}},
            "okx": {"credentials": {"api_key": "k", "api_secret": "s", "passphrase": "p"}},
        }
    })
    return build_container(settings, client_factory=lambda exchange, credentials=None: cli_clients[exchange])


def test_cli_help():
    """Test that CLI shows help correctly."""
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Exchange gateway CLI" in result.output


def test_cli_commands_available():
    """Test that all expected CLI commands are available."""
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("ticker", "portfolio", "transactions", "validate", "stream-key"):
        assert command in result.output


def test_ticker_command(cli_container):
    """Test ticker prints known symbols."""
    runner = CliRunner()
    with patch("cexgate.cli.init_container", return_value=cli_container):
        result = runner.invoke(app, ["ticker", "BTC/USDT", "FAKE/XYZ", "-e", "binance"])

    assert result.exit_code == 0
    assert "BTC/USDT" in result.output


def test_portfolio_reports_failed_exchange(cli_container):
    """Test portfolio shows balances and lists failing exchanges."""
    runner = CliRunner()
    with patch("cexgate.cli.init_container", return_value=cli_container):
        result = runner.invoke(app, ["portfolio"])

    assert result.exit_code == 0
    assert "BTC" in result.output
    assert "okx failed" in result.output


def test_portfolio_without_credentials():
    """Test portfolio refuses to run without configured credentials."""
    runner = CliRunner()
    container = build_container(Settings(), client_factory=lambda exchange, credentials=None: None)
    with patch("cexgate.cli.init_container", return_value=container):
        result = runner.invoke(app, ["portfolio"])

    assert result.exit_code == 1
    assert "No exchange credentials configured" in result.output


def test_transactions_command(cli_container):
    runner = CliRunner()
    with patch("cexgate.cli.init_container", return_value=cli_container):
        result = runner.invoke(app, ["transactions", "BTC/USDT", "-e", "binance"])

    assert result.exit_code == 0
    assert "Total trades: 2" in result.output


def test_transactions_since_rejects_bad_time(cli_container):
    runner = CliRunner()
    with patch("cexgate.cli.init_container", return_value=cli_container):
        result = runner.invoke(app, ["transactions", "BTC/USDT", "--since", "yesterday"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_validate_auth_failure_exit_code(cli_container):
    """Test rejected credentials exit with code 2."""
    runner = CliRunner()
    with patch("cexgate.cli.init_container", return_value=cli_container):
        result = runner.invoke(app, ["validate", "okx"])

    assert result.exit_code == 2
    assert "Invalid API key or secret" in result.output


def test_validate_success(cli_container):
    runner = CliRunner()
    with patch("cexgate.cli.init_container", return_value=cli_container):
        result = runner.invoke(app, ["validate", "binance"])

    assert result.exit_code == 0
    assert "credentials are valid" in result.output


def test_stream_key_command():
    runner = CliRunner()
    result = runner.invoke(app, ["stream-key", "okx", "BTC/USDT", "tickers"])
    assert result.exit_code == 0
    assert "okx:tickers.BTC-USDT" in result.output

    result = runner.invoke(app, ["stream-key", "kraken", "BTC/USDT"])
    assert result.exit_code == 1


def test_stream_key_default_channel_per_exchange():
    """Test the channel defaults to each exchange's ticker channel."""
    runner = CliRunner()
    result = runner.invoke(app, ["stream-key", "okx", "BTC/USDT"])
    assert result.exit_code == 0
    assert "okx:tickers.BTC-USDT" in result.output

    result = runner.invoke(app, ["stream-key", "binance", "ETH/USDT"])
    assert "binance:ethusdt@ticker" in result.output


@patch("cexgate.app.configure_logging")
@patch("cexgate.app.asyncio.run")
def test_serve_mode_applies_overrides(mock_run, mock_logging, tmp_path):
    """Test serve mode loads config with command-line overrides and runs the server."""
    config = tmp_path / "config.yml"
    config.write_text("server:\n  port: 4000\n", encoding="utf-8")

    with patch("cexgate.app.build_container") as mock_build:
        code = main(["serve", "--config", str(config), "--port", "5000"])

    assert code == 0
    settings = mock_build.call_args.args[0]
    assert settings.server.port == 5000
    mock_run.assert_called_once()
    mock_run.call_args.args[0].close()


@patch("cexgate.app.configure_logging")
def test_serve_mode_bad_config(mock_logging, tmp_path):
    config = tmp_path / "config.yml"
    config.write_text("server:\n  port: not-a-port\n", encoding="utf-8")

    assert main(["serve", "--config", str(config)]) == 2


@patch("cexgate.app.configure_logging")
def test_serve_mode_broken_yaml(mock_logging, tmp_path):
    """Test unparseable YAML is a startup refusal, not a traceback."""
    config = tmp_path / "config.yml"
    config.write_text("server: {port: 4000\n", encoding="utf-8")

    with patch("cexgate.app.asyncio.run") as mock_run:
        assert main(["serve", "--config", str(config)]) == 2

    mock_run.assert_not_called()
