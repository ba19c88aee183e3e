"""Tagged events emitted by stream adapters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from ..errors import UpstreamUnavailable


class StreamEventKind(Enum):
    DATA = "data"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """One event from an upstream stream.

    ``DATA`` events carry the normalized ``topic`` and the exchange payload.
    ``ERROR`` events are connection-level diagnostics; ``topic`` is empty
    and ``error`` holds an :class:`UpstreamUnavailable` describing why.
    """

    kind: StreamEventKind
    exchange: str
    topic: str = ""
    payload: Any = None
    error: UpstreamUnavailable | None = None

    @classmethod
    def data(cls, exchange: str, topic: str, payload: Any) -> "StreamEvent":
        return cls(StreamEventKind.DATA, exchange, topic=topic, payload=payload)

    @classmethod
    def failure(cls, exchange: str, reason: str) -> "StreamEvent":
        return cls(StreamEventKind.ERROR, exchange, error=UpstreamUnavailable(reason))

    @property
    def is_data(self) -> bool:
        return self.kind is StreamEventKind.DATA


EventSink = Callable[[StreamEvent], Awaitable[None]]
