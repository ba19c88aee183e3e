"""Protocol definition for exchange clients."""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, Field, SecretStr


class ExchangeCredentials(BaseModel):
    """API credentials for one exchange account.

    ``passphrase`` is only used by exchanges that require one (OKX). Requests
    may send it under its ccxt name, ``password``.
    """

    api_key: SecretStr
    api_secret: SecretStr
    passphrase: SecretStr | None = Field(default=None, alias="password")

    model_config = {"extra": "forbid", "populate_by_name": True}

    def to_ccxt(self) -> dict[str, str]:
        options = {
            "apiKey": self.api_key.get_secret_value(),
            "secret": self.api_secret.get_secret_value(),
        }
        if self.passphrase is not None:
            options["password"] = self.passphrase.get_secret_value()
        return options


class ExchangeClient(Protocol):
    """Request/response client for one exchange.

    Matches the subset of the ``ccxt.async_support`` exchange interface the
    gateway relies on.
    """

    id: str

    async def load_markets(self, reload: bool = False) -> dict[str, Any]:
        """Load the exchange's market list, keyed by unified symbol."""
        ...

    async def fetch_tickers(self, symbols: list[str] | None = None) -> dict[str, Any]:
        """Fetch tickers for the given unified symbols."""
        ...

    async def fetch_balance(self, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Fetch account balances. Requires credentials."""
        ...

    async def fetch_my_trades(
        self,
        symbol: str | None = None,
        since: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch the account's trade history for a symbol. Requires credentials."""
        ...

    async def close(self) -> None:
        """Release the underlying HTTP session."""
        ...
