"""Upstream push-stream adapters."""

from .events import EventSink, StreamEvent, StreamEventKind
from .base import BaseStreamAdapter
from .binance import BinanceStreamAdapter
from .okx import OKXStreamAdapter
from .bybit import BybitStreamAdapter
from .factory import STREAM_ADAPTERS, build_stream_key, create_stream_adapter, parse_stream_key

__all__ = [
    "EventSink",
    "StreamEvent",
    "StreamEventKind",
    "BaseStreamAdapter",
    "BinanceStreamAdapter",
    "OKXStreamAdapter",
    "BybitStreamAdapter",
    "STREAM_ADAPTERS",
    "build_stream_key",
    "create_stream_adapter",
    "parse_stream_key",
]
