"""Binance combined-stream adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseStreamAdapter

BINANCE_WS_BASE = "wss://stream.binance.com:443"


class BinanceStreamAdapter(BaseStreamAdapter):
    """Binance push streams.

    The stream spec is either a raw URL path (``/stream?streams=btcusdt@ticker``)
    or a comma-separated list of stream names (``btcusdt@ticker,ethusdt@trade``)
    which is turned into a combined-stream URL. Binance subscribes through the
    URL, so there is no handshake, and it pings at the protocol level.

    Envelope: ``{"stream": "btcusdt@ticker", "data": {...}}``; the topic is
    the part of the stream name after ``@``.
    """

    name = "binance"

    def get_ws_url(self) -> str:
        if self.stream.startswith("/"):
            return f"{BINANCE_WS_BASE}{self.stream}"
        streams = "/".join(s.strip() for s in self.stream.split(",") if s.strip())
        return f"{BINANCE_WS_BASE}/stream?streams={streams}"

    def parse_message(self, message: dict[str, Any]) -> tuple[str, Any] | None:
        stream = message.get("stream")
        data = message.get("data")
        if not isinstance(stream, str) or data is None:
            return None
        _, _, event_type = stream.partition("@")
        return (event_type or stream), data
