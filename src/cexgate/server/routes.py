"""Aggregation HTTP routes."""

from __future__ import annotations

from typing import Any

from aiohttp import web

from ..errors import AuthenticationFailed, GatewayError, InvalidRequest
from ..exchanges.factory import ValidationStatus
from .keys import REGISTRY_KEY, SERVICE_KEY
from .schemas import (
    PortfolioRequest,
    SyncTransactionsRequest,
    TickerRequest,
    TransactionRequest,
    UpdatePortfolioRequest,
    ValidateRequest,
    parse_request,
)

routes = web.RouteTableDef()


async def _read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise InvalidRequest("Request body must be valid JSON") from exc


@routes.post("/api/cex/ticker")
async def ticker(request: web.Request) -> web.Response:
    body = parse_request(TickerRequest, await _read_json(request))
    result = await request.app[SERVICE_KEY].fetch_ticker(body.symbols, body.exchanges)
    return web.json_response(result.to_response())


@routes.post("/api/cex/portfolio")
async def portfolio(request: web.Request) -> web.Response:
    body = parse_request(PortfolioRequest, await _read_json(request))
    result = await request.app[SERVICE_KEY].fetch_portfolio(body.exchanges, body.credentials)
    return web.json_response(result.to_response())


@routes.post("/api/cex/transaction")
async def transaction(request: web.Request) -> web.Response:
    body = parse_request(TransactionRequest, await _read_json(request))
    result = await request.app[SERVICE_KEY].fetch_transactions(
        body.symbol, body.exchanges, body.credentials
    )
    return web.json_response(result.to_response())


@routes.post("/api/cex/sync-transactions")
async def sync_transactions(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    raw = await _read_json(request)

    user_id = raw.get("user_id") if isinstance(raw, dict) else None
    if user_id is None or user_id == "":
        raise InvalidRequest("Invalid request body. 'user_id' is required.")

    try:
        body = parse_request(SyncTransactionsRequest, raw)
    except InvalidRequest:
        await service.notify_sync_failure(str(user_id))
        raise

    result = await service.sync_transactions(
        body.since, body.symbols, body.exchanges, body.credentials, body.user_id
    )
    if result is None:
        return web.json_response({"success": True})
    return web.json_response(result.to_response())


@routes.post("/api/cex/update-portfolio")
async def update_portfolio(request: web.Request) -> web.Response:
    body = parse_request(UpdatePortfolioRequest, await _read_json(request))
    status = await request.app[SERVICE_KEY].update_portfolio(body.user_id, body.status)
    return web.json_response({"success": status})


@routes.post("/api/cex/validate")
async def validate(request: web.Request) -> web.Response:
    body = parse_request(ValidateRequest, await _read_json(request))
    result = await request.app[SERVICE_KEY].validate_credentials(body.exchange, body.credentials)

    if result.status is ValidationStatus.AUTHENTICATION_FAILED:
        raise AuthenticationFailed(result.error or "Invalid API key or secret")
    if not result.ok:
        raise GatewayError(result.error or "An error occurred while validating the API key")
    return web.json_response({"success": True})


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    registry = request.app[REGISTRY_KEY]
    return web.json_response({
        "success": True,
        "data": {
            "sessions": len(registry.sessions),
            "subscriptions": registry.subscription_count,
        },
    })
