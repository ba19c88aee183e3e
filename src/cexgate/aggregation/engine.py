"""Concurrent fan-out of one operation across several exchange accounts."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..exchanges.factory import ClientFactory, create_exchange_client, resolve_exchange
from ..exchanges.protocol import ExchangeClient, ExchangeCredentials

logger = logging.getLogger(__name__)


@dataclass
class ExchangeOutcome:
    """Settled result of one exchange's share of a request."""

    exchange: str
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MergedResult:
    operation: str
    data: Any
    outcomes: dict[str, ExchangeOutcome] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [name for name, outcome in self.outcomes.items() if outcome.ok]

    @property
    def failed(self) -> dict[str, str]:
        return {name: outcome.error for name, outcome in self.outcomes.items() if not outcome.ok}

    @property
    def partial_failure(self) -> bool:
        """True when at least one exchange failed; the request still succeeds."""
        return bool(self.failed)

    def to_response(self) -> dict[str, Any]:
        response: dict[str, Any] = {"success": True, "data": self.data}
        if self.failed:
            response["failed"] = self.failed
        return response


class AggregationOperation(ABC):
    """A named operation run once per exchange and merged afterwards.

    Operation arguments are bound at construction, so the engine only ever
    deals with ``call`` and ``merge``.
    """

    name: str = ""

    @abstractmethod
    async def call(self, client: ExchangeClient, exchange: str) -> Any:
        """Run the operation against one exchange client."""
        ...

    @abstractmethod
    def merge(self, outcomes: list[ExchangeOutcome]) -> Any:
        """Combine settled outcomes (in request order) into response data."""
        ...


class AggregationEngine:
    """Runs operations against many exchanges at once.

    Every exchange gets its own client and its own outcome slot; calls run
    concurrently and are bounded by ``call_timeout``. The engine waits for
    all of them to settle, so one failing or hanging exchange never affects
    its siblings. Per-request clients are always closed afterwards, which
    also drops any credentials they held.
    """

    def __init__(
        self,
        client_factory: ClientFactory = create_exchange_client,
        *,
        default_exchange: str = "binance",
        call_timeout: float = 30.0,
    ):
        self._client_factory = client_factory
        self.default_exchange = resolve_exchange(default_exchange).name
        self.call_timeout = call_timeout

    @property
    def client_factory(self) -> ClientFactory:
        return self._client_factory

    def resolve(self, exchanges: list[str] | None) -> list[str]:
        """Normalize requested exchange names.

        An empty request means the default exchange. Duplicates collapse and
        order is preserved.

        Raises:
            UnsupportedExchange: On the first unknown name
        """
        if not exchanges:
            return [self.default_exchange]
        names: list[str] = []
        for exchange in exchanges:
            name = resolve_exchange(exchange).name
            if name not in names:
                names.append(name)
        return names

    async def run(
        self,
        operation: AggregationOperation,
        exchanges: list[str] | None = None,
        credentials: Mapping[str, ExchangeCredentials] | None = None,
    ) -> MergedResult:
        """Run ``operation`` on every requested exchange and merge the outcomes.

        Raises:
            UnsupportedExchange: If any requested exchange is unknown; no call
                is made in that case
        """
        names = self.resolve(exchanges)
        by_exchange = {name.lower(): creds for name, creds in (credentials or {}).items()}

        logger.debug("Running %s on %s", operation.name, ", ".join(names))
        outcomes = await asyncio.gather(
            *(self._settle(operation, name, by_exchange.get(name)) for name in names)
        )

        result = MergedResult(
            operation=operation.name,
            data=operation.merge(list(outcomes)),
            outcomes={outcome.exchange: outcome for outcome in outcomes},
        )
        if result.failed:
            logger.warning(
                "%s partially failed: %d/%d exchanges failed (%s)",
                operation.name,
                len(result.failed),
                len(names),
                ", ".join(result.failed),
            )
        return result

    async def _settle(
        self,
        operation: AggregationOperation,
        exchange: str,
        credentials: ExchangeCredentials | None,
    ) -> ExchangeOutcome:
        try:
            client = self._client_factory(exchange, credentials)
        except Exception as exc:
            logger.error("Failed to initialize %s client: %s", exchange, exc)
            return ExchangeOutcome(exchange, error=_reason(exc))

        try:
            value = await asyncio.wait_for(operation.call(client, exchange), self.call_timeout)
        except asyncio.TimeoutError:
            logger.error("%s on %s timed out after %.1fs", operation.name, exchange, self.call_timeout)
            return ExchangeOutcome(exchange, error=f"{exchange} did not respond within {self.call_timeout:g}s")
        except Exception as exc:
            logger.error("Error in %s for %s: %s", operation.name, exchange, exc)
            return ExchangeOutcome(exchange, error=_reason(exc))
        finally:
            await _close_client(client, exchange)

        return ExchangeOutcome(exchange, value=value)


async def _close_client(client: ExchangeClient, exchange: str) -> None:
    try:
        await client.close()
    except Exception as exc:
        logger.warning("Failed to close %s client: %s", exchange, exc)


def _reason(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__
