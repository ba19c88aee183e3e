"""Request bodies for the aggregation routes."""

from __future__ import annotations

from typing import Any, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import InvalidRequest
from ..exchanges.protocol import ExchangeCredentials

M = TypeVar("M", bound=BaseModel)


class _Request(BaseModel):
    model_config = {"extra": "ignore"}


class TickerRequest(_Request):
    symbols: list[str] = Field(min_length=1)
    exchanges: list[str] = Field(default_factory=list)


class PortfolioRequest(_Request):
    exchanges: list[str] = Field(default_factory=list)
    credentials: dict[str, ExchangeCredentials]


class TransactionRequest(_Request):
    symbol: str = Field(min_length=1)
    exchanges: list[str] = Field(default_factory=list)
    credentials: dict[str, ExchangeCredentials]


class SyncTransactionsRequest(_Request):
    user_id: str
    since: int | float | str
    symbols: list[str]
    exchanges: list[str] = Field(default_factory=list)
    credentials: dict[str, ExchangeCredentials]

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class UpdatePortfolioRequest(_Request):
    user_id: str
    status: bool = True

    @field_validator("user_id", mode="before")
    @classmethod
    def _stringify_user(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class ValidateRequest(_Request):
    exchange: str = Field(min_length=1)
    credentials: ExchangeCredentials

    @model_validator(mode="before")
    @classmethod
    def _unwrap_credentials(cls, data: Any) -> Any:
        # Accept {"credentials": {"binance": {...}}} as well as the flat form
        if isinstance(data, dict):
            exchange = data.get("exchange")
            creds = data.get("credentials")
            if isinstance(exchange, str) and isinstance(creds, dict):
                nested = creds.get(exchange) or creds.get(exchange.lower())
                if isinstance(nested, dict):
                    return {**data, "credentials": nested}
        return data


def _describe(exc: ValidationError) -> str:
    error = exc.errors()[0]
    loc = ".".join(str(part) for part in error.get("loc", ()))
    if error.get("type") == "missing" and loc.split(".")[0] == "credentials":
        return "API credentials are required"
    if error.get("type") == "missing":
        return f"Invalid request body. '{loc}' is required."
    return f"Invalid request body. '{loc}': {error.get('msg')}"


def parse_request(model: Type[M], data: Any) -> M:
    """Validate a decoded JSON body.

    Raises:
        InvalidRequest: With a message naming the first offending field
    """
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequest(_describe(exc)) from exc
