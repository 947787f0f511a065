"""HTTP plumbing shared by the custom routes: SSE framing and session cookies."""

from __future__ import annotations

import json
import secrets
from collections.abc import AsyncIterator
from typing import Any

from starlette.requests import Request
from starlette.responses import Response, StreamingResponse

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

SESSION_MAX_AGE_SECONDS = 30 * 24 * 60 * 60


def format_sse_event(event: dict[str, Any]) -> str:
    """One server-sent event: ``data: <json>`` followed by a blank line."""
    return f"data: {json.dumps(event)}\n\n"


async def _sse_body(events: AsyncIterator[dict[str, Any]]) -> AsyncIterator[str]:
    async for event in events:
        yield format_sse_event(event)


def sse_response(events: AsyncIterator[dict[str, Any]]) -> StreamingResponse:
    return StreamingResponse(
        _sse_body(events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


def resolve_session(request: Request, cookie_name: str) -> tuple[str, bool]:
    """Return the request's session id and whether it was newly issued."""
    session_id = request.cookies.get(cookie_name)
    if session_id:
        return session_id, False
    return secrets.token_urlsafe(24), True


def attach_session(response: Response, cookie_name: str, session_id: str, is_new: bool) -> Response:
    if is_new:
        response.set_cookie(
            cookie_name,
            session_id,
            max_age=SESSION_MAX_AGE_SECONDS,
            httponly=True,
            samesite="lax",
        )
    return response


def external_base_url(request: Request) -> str:
    """Scheme and host as seen by the browser, honouring proxy headers."""
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"
