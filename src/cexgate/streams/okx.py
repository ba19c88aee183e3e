"""OKX public channel adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseStreamAdapter


class OKXStreamAdapter(BaseStreamAdapter):
    """OKX v5 public channels.

    Stream spec: comma-separated ``channel.instId`` entries, e.g.
    ``tickers.BTC-USDT``; a bare ``channel`` subscribes without an
    instrument. Envelope: ``{"arg": {"channel": ...}, "data": [...]}``.
    OKX expects a literal ``ping`` text frame and answers ``pong``.
    """

    name = "okx"

    def get_ws_url(self) -> str:
        return "wss://ws.okx.com:8443/ws/v5/public"

    def subscribe_message(self) -> dict[str, Any]:
        args = []
        for entry in self.stream.split(","):
            entry = entry.strip()
            if not entry:
                continue
            channel, _, inst_id = entry.partition(".")
            arg = {"channel": channel}
            if inst_id:
                arg["instId"] = inst_id
            args.append(arg)
        return {"op": "subscribe", "args": args}

    def ping_message(self) -> str:
        return "ping"

    def parse_message(self, message: dict[str, Any]) -> tuple[str, Any] | None:
        arg = message.get("arg")
        data = message.get("data")
        if not isinstance(arg, dict) or data is None:
            return None
        channel = arg.get("channel")
        if not channel:
            return None
        return channel, data
