"""Typer-based CLI for one-shot aggregation queries."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from .aggregation.engine import MergedResult
    from .di import AppContainer


def _load_settings(config_path: Optional[Path] = None):
    from .config import load_settings
    return load_settings(config_path)


def _build_container(settings):
    from .di import build_container
    return build_container(settings)


app = typer.Typer(help="Exchange gateway CLI")
console = Console()
logger = logging.getLogger(__name__)


def run_cli(argv: list[str] | None = None) -> None:
    """Run CLI with optional argv parameter."""
    app(argv)


def init_container(config_path: Optional[Path] = None) -> "AppContainer":
    settings = _load_settings(config_path)
    return _build_container(settings)


def _configured_credentials(container: "AppContainer", exchanges: list[str]):
    from .exchanges.init import credentials_from_settings
    credentials = credentials_from_settings(container.settings, exchanges or None)
    if not credentials:
        console.print("[red]Error:[/red] No exchange credentials configured")
        raise typer.Exit(1)
    return credentials


def _print_failures(result: "MergedResult") -> None:
    for exchange, reason in result.failed.items():
        console.print(f"[yellow]{exchange} failed:[/yellow] {reason}")


def _fmt(value: Any, digits: int = 8) -> str:
    if value is None:
        return ""
    if isinstance(value, (int, float)):
        return f"{value:.{digits}f}".rstrip("0").rstrip(".")
    return str(value)


def _fmt_time(timestamp: Any) -> str:
    if not isinstance(timestamp, (int, float)):
        return ""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@app.command()
def ticker(
    symbols: list[str] = typer.Argument(..., help="Symbols, e.g. BTC/USDT ETH/USDT"),
    exchange: list[str] = typer.Option([], "--exchange", "-e", help="Exchange to query (repeatable)"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show latest tickers, skipping symbols the exchange does not list."""
    try:
        container = init_container(config)
        result = asyncio.run(container.service.fetch_ticker(symbols, exchange))
    except Exception as e:
        logger.error("Failed to fetch tickers: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Tickers")
    table.add_column("Symbol", style="cyan")
    table.add_column("Exchange")
    table.add_column("Last", justify="right")
    table.add_column("Bid", justify="right")
    table.add_column("Ask", justify="right")
    table.add_column("24h %", justify="right")

    for symbol, data in result.data.items():
        change = data.get("percentage")
        table.add_row(
            symbol,
            data.get("source_exchange", ""),
            _fmt(data.get("last")),
            _fmt(data.get("bid")),
            _fmt(data.get("ask")),
            _fmt(change, 2) if change is not None else "",
        )

    if result.data:
        console.print(table)
    else:
        console.print("[yellow]No tickers found for the requested symbols[/yellow]")
    _print_failures(result)


@app.command()
def portfolio(
    exchange: list[str] = typer.Option([], "--exchange", "-e", help="Exchange to query (repeatable)"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show non-zero balances for the configured accounts."""
    try:
        container = init_container(config)
        credentials = _configured_credentials(container, exchange)
        result = asyncio.run(
            container.service.fetch_portfolio(exchange or list(credentials), credentials)
        )
    except typer.Exit:
        raise
    except Exception as e:
        logger.error("Failed to fetch portfolio: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Portfolio")
    table.add_column("Exchange", style="cyan")
    table.add_column("Asset")
    table.add_column("Free", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Total", justify="right")

    for name, balance in result.data.items():
        if "error" in balance:
            continue
        for asset, total in (balance.get("total") or {}).items():
            if not total:
                continue
            table.add_row(
                name,
                asset,
                _fmt((balance.get("free") or {}).get(asset)),
                _fmt((balance.get("used") or {}).get(asset)),
                _fmt(total),
            )

    console.print(table)
    _print_failures(result)


@app.command()
def transactions(
    symbol: str = typer.Argument(..., help="Symbol, e.g. BTC/USDT"),
    exchange: list[str] = typer.Option([], "--exchange", "-e", help="Exchange to query (repeatable)"),
    since: Optional[str] = typer.Option(None, help="Only trades since this time (ms or ISO-8601), newest first"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show trade history for a symbol across accounts."""
    from .aggregation.operations import FetchTransactions, SyncTransactions
    from .aggregation.service import parse_since

    try:
        container = init_container(config)
        credentials = _configured_credentials(container, exchange)
        if since is None:
            operation = FetchTransactions(symbol)
        else:
            operation = SyncTransactions([symbol], parse_since(since))
        result = asyncio.run(
            container.engine.run(operation, exchange or list(credentials), credentials)
        )
    except typer.Exit:
        raise
    except Exception as e:
        logger.error("Failed to fetch transactions: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Trades {symbol}")
    table.add_column("Time")
    table.add_column("Exchange", style="cyan")
    table.add_column("Side")
    table.add_column("Amount", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Cost", justify="right")

    trades = [t for t in result.data if "error" not in t]
    for trade in trades:
        side = trade.get("side") or ""
        colour = "green" if side == "buy" else "red"
        table.add_row(
            _fmt_time(trade.get("timestamp")),
            trade.get("source_exchange", ""),
            f"[{colour}]{side}[/{colour}]" if side else "",
            _fmt(trade.get("amount")),
            _fmt(trade.get("price")),
            _fmt(trade.get("cost")),
        )

    console.print(table)
    console.print(f"\n[bold]Total trades:[/bold] {len(trades)}")
    _print_failures(result)


@app.command()
def validate(
    exchange: str = typer.Argument(..., help="Exchange whose configured credentials to check"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Check configured API credentials with an authenticated call."""
    try:
        container = init_container(config)
        credentials = _configured_credentials(container, [exchange])
        name = exchange.lower()
        if name not in credentials:
            console.print(f"[red]Error:[/red] No credentials configured for {exchange}")
            raise typer.Exit(1)
        result = asyncio.run(container.service.validate_credentials(name, credentials[name]))
    except typer.Exit:
        raise
    except Exception as e:
        logger.error("Failed to validate credentials: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if result.ok:
        console.print(f"[green]✓[/green] {exchange} credentials are valid")
        return

    console.print(f"[red]✗[/red] {exchange}: {result.error} ({result.status.value})")
    raise typer.Exit(2 if result.status.http_status == 401 else 1)


@app.command("stream-key")
def stream_key(
    exchange: str = typer.Argument(..., help="Exchange (binance, okx, bybit)"),
    symbol: str = typer.Argument(..., help="Symbol, e.g. BTC/USDT"),
    channel: Optional[str] = typer.Argument(None, help="Exchange channel name (default: the exchange's ticker channel)"),
) -> None:
    """Print the subscription key for a symbol's stream."""
    from .errors import GatewayError
    from .streams.factory import build_stream_key

    try:
        console.print(build_stream_key(exchange, symbol, channel))
    except GatewayError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def main():
    """CLI main entry point."""
    app()


if __name__ == "__main__":
    main()
