"""Drop-policy rate limiting for outbound market data."""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, TypeVar

Clock = Callable[[], float]
T = TypeVar("T")


class Throttle:
    """Minimum-interval gate for one delivery context.

    A call passes when at least ``delay`` seconds have elapsed since the last
    call that passed; the very first call always passes. Calls inside the
    window are rejected outright: nothing is queued and the latest value is
    not kept.
    """

    def __init__(self, delay: float, clock: Clock = time.monotonic):
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self._clock = clock
        self._last: float | None = None
        self.passed = 0
        self.dropped = 0

    def allow(self) -> bool:
        now = self._clock()
        if self._last is None or now - self._last >= self.delay:
            self._last = now
            self.passed += 1
            return True
        self.dropped += 1
        return False


def throttled(
    func: Callable[..., Awaitable[T]],
    delay: float,
    clock: Clock = time.monotonic,
) -> Callable[..., Awaitable[T | None]]:
    """Wrap an async delivery function with its own :class:`Throttle`.

    Dropped calls return None without invoking ``func``.
    """
    gate = Throttle(delay, clock)

    async def wrapper(*args: Any, **kwargs: Any) -> T | None:
        if not gate.allow():
            return None
        return await func(*args, **kwargs)

    wrapper.throttle = gate  # type: ignore[attr-defined]
    return wrapper
