"""Bybit v5 spot adapter."""

from __future__ import annotations

import json
from typing import Any

from .base import BaseStreamAdapter


class BybitStreamAdapter(BaseStreamAdapter):
    """Bybit v5 public spot topics.

    Stream spec: comma-separated Bybit topics, e.g. ``tickers.BTCUSDT``.
    Envelope: ``{"topic": "tickers.BTCUSDT", "data": {...}}``; the topic is
    reduced to its channel segment (``tickers``).
    """

    name = "bybit"

    def get_ws_url(self) -> str:
        return "wss://stream.bybit.com/v5/public/spot"

    def subscribe_message(self) -> dict[str, Any]:
        topics = [t.strip() for t in self.stream.split(",") if t.strip()]
        return {"op": "subscribe", "args": topics}

    def ping_message(self) -> str:
        return json.dumps({"op": "ping"})

    def parse_message(self, message: dict[str, Any]) -> tuple[str, Any] | None:
        topic = message.get("topic")
        data = message.get("data")
        if not isinstance(topic, str) or data is None:
            return None
        return topic.split(".", 1)[0], data
