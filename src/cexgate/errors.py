"""Error taxonomy shared by the relay, the aggregation engine and the server."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors reported to gateway clients."""

    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(GatewayError):
    """Raised when a request is missing fields or carries malformed ones."""

    status = 400


class UnsupportedExchange(GatewayError):
    """Raised for an exchange name outside the supported set."""

    status = 400

    def __init__(self, exchange: str, supported: list[str] | None = None):
        message = f"Unsupported exchange: {exchange}"
        if supported:
            message += f". Supported exchanges: {', '.join(supported)}"
        super().__init__(message)
        self.exchange = exchange


class AuthenticationFailed(GatewayError):
    """Raised when an exchange rejects the supplied credentials."""

    status = 401


class UpstreamUnavailable(GatewayError):
    """Raised when an upstream stream cannot be reached or fails mid-stream."""

    status = 502
