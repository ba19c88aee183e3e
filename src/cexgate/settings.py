from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator

from .exchanges.factory import SUPPORTED_EXCHANGES
from .exchanges.protocol import ExchangeCredentials


def _check_exchange_name(name: str) -> str:
    lowered = name.lower()
    if lowered not in SUPPORTED_EXCHANGES:
        supported = ", ".join(SUPPORTED_EXCHANGES)
        raise ValueError(f"unsupported exchange {name!r} (supported: {supported})")
    return lowered


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=3003, ge=0, le=65535)
    ws_heartbeat: float = Field(default=30.0, gt=0)

    model_config = {"extra": "forbid"}


class RelaySettings(BaseModel):
    throttle_delay: float = Field(default=10.0, ge=0)
    upstream_heartbeat: float = Field(default=20.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    default_stream_exchange: str = "binance"

    model_config = {"extra": "forbid"}

    @field_validator("default_stream_exchange")
    @classmethod
    def _known_exchange(cls, value: str) -> str:
        return _check_exchange_name(value)


class AggregationSettings(BaseModel):
    default_exchange: str = "binance"
    call_timeout: float = Field(default=30.0, gt=0)

    model_config = {"extra": "forbid"}

    @field_validator("default_exchange")
    @classmethod
    def _known_exchange(cls, value: str) -> str:
        return _check_exchange_name(value)


class ProxySettings(BaseModel):
    enabled: bool = False
    url: str | None = None
    username: str | None = None
    password: SecretStr | None = None

    model_config = {"extra": "forbid"}

    @property
    def proxy_url(self) -> str | None:
        """Proxy URL with basic-auth credentials folded in, if enabled."""
        if not self.enabled or not self.url:
            return None
        if self.username and self.password:
            protocol, sep, rest = self.url.partition("://")
            if not sep:
                protocol, rest = "http", self.url
            return f"{protocol}://{self.username}:{self.password.get_secret_value()}@{rest}"
        return self.url


class ExchangeSettings(BaseModel):
    sandbox: bool = False
    credentials: ExchangeCredentials | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class Settings(BaseModel):
    env: str = "dev"
    server: ServerSettings = Field(default_factory=ServerSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    exchanges: dict[str, ExchangeSettings] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    @field_validator("exchanges")
    @classmethod
    def _known_exchanges(cls, value: dict[str, ExchangeSettings]) -> dict[str, ExchangeSettings]:
        return {_check_exchange_name(name): cfg for name, cfg in value.items()}

    def exchange(self, name: str) -> ExchangeSettings:
        """Settings for ``name``, falling back to defaults when unconfigured."""
        return self.exchanges.get(name.lower()) or ExchangeSettings()

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        for exch in data.get("exchanges", {}).values():
            creds = exch.get("credentials")
            if isinstance(creds, dict):
                for field in ("api_key", "api_secret", "passphrase"):
                    if creds.get(field) is not None:
                        creds[field] = "***"
        proxy = data.get("proxy")
        if isinstance(proxy, dict) and proxy.get("password") is not None:
            proxy["password"] = "***"
        return data
