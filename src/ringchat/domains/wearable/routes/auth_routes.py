"""HTTP routes for the Oura OAuth connect/callback/disconnect flow."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from ringchat.core.cache.response_cache import SessionResponseCache
from ringchat.core.server.http import attach_session, external_base_url, resolve_session
from ringchat.core.session.store import SessionStore
from ringchat.domains.wearable.connectors.oauth import OuraOAuthClient

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/auth/oura/callback"


def _redirect(target: str) -> RedirectResponse:
    return RedirectResponse(target, status_code=302)


def create_auth_routes(
    oauth_client: OuraOAuthClient,
    store: SessionStore,
    cache: SessionResponseCache,
    cookie_name: str,
) -> list[Route]:
    """Routes under ``/api/auth/oura``."""

    def redirect_uri(request: Request) -> str:
        return f"{external_base_url(request)}{CALLBACK_PATH}"

    async def start(request: Request) -> Response:
        if not oauth_client.is_configured():
            return JSONResponse(
                {
                    "error": (
                        "OAuth not configured. OURA_CLIENT_ID and OURA_CLIENT_SECRET are required."
                    )
                },
                status_code=500,
            )
        session_id, is_new = resolve_session(request, cookie_name)
        state = oauth_client.new_state()
        store.set_oauth_state(session_id, state)

        uri = redirect_uri(request)
        logger.info("OAuth redirect URI: %s", uri)
        response = JSONResponse(
            {"authUrl": oauth_client.authorization_url(uri, state), "redirectUri": uri}
        )
        return attach_session(response, cookie_name, session_id, is_new)

    async def callback(request: Request) -> Response:
        params = request.query_params
        if params.get("error"):
            return _redirect("/?error=access_denied")

        code = params.get("code")
        if not code:
            return _redirect("/?error=no_code")

        session_id = request.cookies.get(cookie_name)
        expected = store.pop_oauth_state(session_id) if session_id else None
        if not session_id or expected is None or params.get("state") != expected:
            return _redirect("/?error=invalid_state")

        tokens = await oauth_client.exchange_code(code, redirect_uri(request))
        if tokens is None:
            return _redirect("/?error=token_exchange_failed")

        store.set_tokens(session_id, tokens)
        cache.clear(session_id)
        logger.info("Oura connected for session")
        return _redirect("/?connected=true")

    async def disconnect(request: Request) -> Response:
        session_id = request.cookies.get(cookie_name)
        if session_id:
            store.clear_tokens(session_id)
            cache.clear(session_id)
        return JSONResponse({"success": True})

    return [
        Route("/api/auth/oura", start, methods=["GET"]),
        Route(CALLBACK_PATH, callback, methods=["GET"]),
        Route("/api/auth/oura/disconnect", disconnect, methods=["POST"]),
    ]
