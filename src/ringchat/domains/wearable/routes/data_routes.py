"""HTTP routes for connection status, today's metrics and raw category data."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import date, timedelta
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ringchat.domains.wearable.connectors import WearableDataProvider, WearableFetchError
from ringchat.domains.wearable.connectors.oauth import OuraOAuthClient
from ringchat.domains.wearable.domain_logic.data_fetch import fetch_today_metrics
from ringchat.domains.wearable.domain_logic.models import HeartRateResult

logger = logging.getLogger(__name__)

NOT_CONNECTED = {"error": "Not connected to Oura"}


def _days_param(request: Request, default: int) -> int:
    try:
        days = int(request.query_params.get("days", ""))
    except ValueError:
        return default
    return days if days > 0 else default


def create_data_routes(
    provider: WearableDataProvider,
    oauth_client: OuraOAuthClient | None,
    cookie_name: str,
    today: Callable[[], date] = date.today,
) -> list[Route]:
    """Routes under ``/api/oura`` other than the query stream."""

    async def status(request: Request) -> Response:
        session_id = request.cookies.get(cookie_name)
        try:
            if not provider.is_connected(session_id):
                if oauth_client is None or not oauth_client.is_configured():
                    return JSONResponse({"connected": False, "reason": "oauth_not_configured"})
                return JSONResponse({"connected": False, "reason": "not_authenticated"})
            connected = await provider.check_connection(session_id or "")
        except Exception:
            logger.exception("Error checking Oura status")
            return JSONResponse({"connected": False, "reason": "error"})
        return JSONResponse({"connected": connected, "reason": "ok" if connected else "invalid_token"})

    async def metrics(request: Request) -> Response:
        session_id = request.cookies.get(cookie_name)
        if not provider.is_connected(session_id):
            return JSONResponse(NOT_CONNECTED, status_code=401)
        return JSONResponse(await fetch_today_metrics(provider, session_id or "", today()))

    def category_endpoint(
        label: str,
        fetch: Callable[[str, str, str], Awaitable[Any]],
        default_days: int,
    ) -> Callable[[Request], Awaitable[Response]]:
        async def endpoint(request: Request) -> Response:
            session_id = request.cookies.get(cookie_name)
            if not provider.is_connected(session_id):
                return JSONResponse(NOT_CONNECTED, status_code=401)
            days = _days_param(request, default_days)
            end = today()
            start = end - timedelta(days=days)
            try:
                result = await fetch(session_id or "", start.isoformat(), end.isoformat())
            except WearableFetchError:
                logger.exception("Error fetching %s data", label)
                return JSONResponse({"error": f"Failed to fetch {label} data"}, status_code=500)
            if isinstance(result, HeartRateResult):
                result = result.to_dict()
            return JSONResponse(result)

        return endpoint

    return [
        Route("/api/oura/status", status, methods=["GET"]),
        Route("/api/oura/metrics", metrics, methods=["GET"]),
        Route("/api/oura/sleep", category_endpoint("sleep", provider.get_sleep, 7), methods=["GET"]),
        Route(
            "/api/oura/activity",
            category_endpoint("activity", provider.get_activity, 7),
            methods=["GET"],
        ),
        Route(
            "/api/oura/readiness",
            category_endpoint("readiness", provider.get_readiness, 7),
            methods=["GET"],
        ),
        Route(
            "/api/oura/heartrate",
            category_endpoint("heart rate", provider.get_heart_rate, 1),
            methods=["GET"],
        ),
    ]
