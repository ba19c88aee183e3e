"""Symbol normalization between unified (ccxt) and exchange-native formats."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

QUOTE_ASSETS = ("USDT", "USDC", "BUSD", "FDUSD", "TUSD", "DAI", "BTC", "ETH", "EUR")


def extract_base_symbol(symbol: str) -> tuple[str, str]:
    """Split a symbol into (base, quote).

    Handles ``BTC/USDT``, ``BTC-USDT`` and ``BTCUSDT``. A concatenated symbol
    whose quote is not recognised comes back as ``(symbol, "")``.
    """
    if not symbol:
        return "", ""

    symbol = symbol.strip().upper()
    # ccxt derivative suffixes like BTC/USDT:USDT
    symbol = symbol.split(":", 1)[0]

    for separator in ("/", "-", "_"):
        if separator in symbol:
            base, _, quote = symbol.partition(separator)
            return base.strip(), quote.strip()

    for quote in sorted(QUOTE_ASSETS, key=len, reverse=True):
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[: -len(quote)], quote

    return symbol, ""


def to_market_symbol(symbol: str) -> str:
    """Convert a symbol to the unified ``BASE/QUOTE`` form used by ccxt.

    Already-unified symbols (including ``BASE/QUOTE:SETTLE``) are only
    upper-cased. Anything that cannot be split is returned upper-cased and
    unchanged so that market validation rejects it.
    """
    cleaned = symbol.strip().upper()
    if "/" in cleaned:
        return cleaned
    base, quote = extract_base_symbol(cleaned)
    if base and quote:
        return f"{base}/{quote}"
    return cleaned


def to_stream_symbol(exchange: str, symbol: str) -> str:
    """Render a symbol in the format an exchange's push streams expect.

    - binance: ``btcusdt``
    - okx: ``BTC-USDT``
    - bybit: ``BTCUSDT``
    """
    base, quote = extract_base_symbol(symbol)
    if not quote:
        logger.debug("Could not split symbol %s, passing through", symbol)
        joined = base
    else:
        joined = f"{base}{quote}"

    exchange = exchange.lower()
    if exchange == "binance":
        return joined.lower()
    if exchange == "okx" and quote:
        return f"{base}-{quote}"
    return joined
