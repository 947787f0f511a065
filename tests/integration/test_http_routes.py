"""Integration tests for the HTTP routes, through Starlette's TestClient."""

from __future__ import annotations

import json
from datetime import date
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from conftest import RecordingWearableProvider, no_sleep
from starlette.applications import Starlette
from starlette.testclient import TestClient

from ringchat.core.cache.response_cache import SessionResponseCache
from ringchat.core.llm.client import GenerationClient
from ringchat.core.llm.provider import GenerationError
from ringchat.core.llm.providers.mock import MockProvider
from ringchat.core.session.store import OuraTokens, SessionStore
from ringchat.domains.wearable.connectors.oauth import OuraOAuthClient
from ringchat.domains.wearable.domain_logic.date_range import DateRangeResolver
from ringchat.domains.wearable.domain_logic.query_orchestrator import QueryOrchestrator
from ringchat.domains.wearable.routes.auth_routes import create_auth_routes
from ringchat.domains.wearable.routes.data_routes import create_data_routes
from ringchat.domains.wearable.routes.query_routes import create_query_routes

COOKIE = "ringchat_session"
TODAY = date(2025, 6, 15)


def _token_endpoint(request: httpx.Request) -> httpx.Response:
    form = parse_qs(request.content.decode())
    if form.get("code") == ["bad-code"]:
        return httpx.Response(400, json={"error": "invalid_grant"})
    return httpx.Response(
        200, json={"access_token": "acc", "refresh_token": "ref", "expires_in": 86400}
    )


def _oauth(configured: bool = True) -> OuraOAuthClient:
    return OuraOAuthClient(
        "cid" if configured else "",
        "secret" if configured else "",
        token_url="https://auth.test/oauth/token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_token_endpoint)),
    )


def _app(
    provider: RecordingWearableProvider | None = None,
    llm: MockProvider | None = None,
    oauth: OuraOAuthClient | None = None,
    store: SessionStore | None = None,
) -> tuple[Starlette, SessionStore]:
    provider = provider or RecordingWearableProvider()
    llm = llm or MockProvider(chunks=["Slept ", "well."])
    oauth = oauth or _oauth()
    store = store or SessionStore()
    cache = SessionResponseCache()
    client = GenerationClient(llm, ["primary"], sleep=no_sleep, jitter=lambda: 0.0)
    orchestrator = QueryOrchestrator(
        provider,
        client,
        cache,
        date_resolver=DateRangeResolver(client, today=lambda: TODAY),
    )
    routes = (
        create_query_routes(orchestrator, COOKIE)
        + create_data_routes(provider, oauth, COOKIE, today=lambda: TODAY)
        + create_auth_routes(oauth, store, cache, COOKIE)
    )
    return Starlette(routes=routes), store


def _sse_events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.split("\n\n")
        if line.startswith("data: ")
    ]


class TestQueryRoute:
    def test_streams_events_and_issues_session_cookie(self):
        app, _ = _app()
        with TestClient(app) as client:
            response = client.post("/api/oura/query", json={"query": "How did I sleep last night?"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert COOKIE in response.headers.get("set-cookie", "")
        events = _sse_events(response.text)
        assert events[0] == {"content": "Slept "}
        assert events[-1]["done"] is True
        assert "sleep" in events[-1]["ouraData"]

    def test_conversation_history_is_accepted(self):
        app, _ = _app()
        body = {
            "query": "Is that good?",
            "conversationHistory": [
                {"role": "user", "content": "How did I sleep?"},
                {"role": "assistant", "content": "Fine."},
            ],
        }
        with TestClient(app) as client:
            response = client.post("/api/oura/query", json=body)
        assert response.status_code == 200
        assert _sse_events(response.text)[-1]["done"] is True

    def test_empty_query_is_400(self):
        app, _ = _app()
        with TestClient(app) as client:
            response = client.post("/api/oura/query", json={"query": ""})
        assert response.status_code == 400
        assert response.json() == {"error": "Please enter a question"}

    def test_long_query_is_400(self):
        app, _ = _app()
        with TestClient(app) as client:
            response = client.post("/api/oura/query", json={"query": "x" * 501})
        assert response.status_code == 400
        assert response.json() == {"error": "Please keep your question under 500 characters"}

    def test_invalid_body_is_400(self):
        app, _ = _app()
        with TestClient(app) as client:
            response = client.post(
                "/api/oura/query", content=b"not json", headers={"content-type": "application/json"}
            )
        assert response.status_code == 400

    def test_undecodable_body_is_400(self):
        app, _ = _app()
        with TestClient(app) as client:
            response = client.post(
                "/api/oura/query",
                content=b'{"query": "\xff\xfe sleep"}',
                headers={"content-type": "application/json"},
            )
        assert response.status_code == 400
        assert response.json() == {"error": "Query is required"}

    def test_not_connected_is_401(self):
        app, _ = _app(provider=RecordingWearableProvider(connected=False))
        with TestClient(app) as client:
            response = client.post("/api/oura/query", json={"query": "How did I sleep?"})
        assert response.status_code == 401
        assert response.json() == {"error": "Please connect your Oura ring first."}

    def test_generation_failure_is_error_event(self):
        app, _ = _app(llm=MockProvider(failures=[GenerationError("model unavailable")]))
        with TestClient(app) as client:
            response = client.post("/api/oura/query", json={"query": "How did I sleep last night?"})
        assert response.status_code == 200
        assert _sse_events(response.text) == [
            {"error": "Failed to process query: model unavailable"}
        ]


class TestDataRoutes:
    def test_status_connected(self):
        app, _ = _app()
        with TestClient(app) as client:
            assert client.get("/api/oura/status").json() == {"connected": True, "reason": "ok"}

    def test_status_oauth_not_configured(self):
        app, _ = _app(provider=RecordingWearableProvider(connected=False), oauth=_oauth(False))
        with TestClient(app) as client:
            assert client.get("/api/oura/status").json() == {
                "connected": False,
                "reason": "oauth_not_configured",
            }

    def test_status_not_authenticated(self):
        app, _ = _app(provider=RecordingWearableProvider(connected=False))
        with TestClient(app) as client:
            assert client.get("/api/oura/status").json()["reason"] == "not_authenticated"

    def test_metrics(self):
        app, _ = _app()
        with TestClient(app) as client:
            metrics = client.get("/api/oura/metrics").json()
        assert set(metrics) == {"sleepScore", "activityScore", "readinessScore", "restingHR"}

    def test_metrics_not_connected(self):
        app, _ = _app(provider=RecordingWearableProvider(connected=False))
        with TestClient(app) as client:
            assert client.get("/api/oura/metrics").status_code == 401

    def test_sleep_days_param(self):
        provider = RecordingWearableProvider()
        app, _ = _app(provider=provider)
        with TestClient(app) as client:
            sleep = client.get("/api/oura/sleep", params={"days": 3}).json()
        assert [r["day"] for r in sleep] == ["2025-06-12", "2025-06-13", "2025-06-14", "2025-06-15"]

    @pytest.mark.parametrize("days", ["abc", "0", "-2"])
    def test_invalid_days_uses_default(self, days):
        provider = RecordingWearableProvider()
        app, _ = _app(provider=provider)
        with TestClient(app) as client:
            client.get("/api/oura/activity", params={"days": days})
        assert provider.calls == [("activity", "2025-06-08", "2025-06-15")]

    def test_heartrate_defaults_to_one_day(self):
        app, _ = _app()
        with TestClient(app) as client:
            body = client.get("/api/oura/heartrate").json()
        assert sorted(body["dailyStats"]) == ["2025-06-14", "2025-06-15"]

    def test_fetch_failure_is_500(self):
        app, _ = _app(provider=RecordingWearableProvider(failing=("readiness",)))
        with TestClient(app) as client:
            response = client.get("/api/oura/readiness")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch readiness data"}


class TestAuthRoutes:
    def _start(self, client: TestClient) -> str:
        body = client.get("/api/auth/oura").json()
        assert body["redirectUri"] == "http://testserver/api/auth/oura/callback"
        return parse_qs(urlparse(body["authUrl"]).query)["state"][0]

    def test_connect_flow(self):
        app, store = _app()
        with TestClient(app) as client:
            state = self._start(client)
            session_id = client.cookies.get(COOKIE)
            response = client.get(
                "/api/auth/oura/callback",
                params={"code": "good-code", "state": state},
                follow_redirects=False,
            )
        assert response.status_code == 302
        assert response.headers["location"] == "/?connected=true"
        assert store.get_tokens(session_id).access_token == "acc"

    def test_unconfigured_oauth_is_500(self):
        app, _ = _app(oauth=_oauth(False))
        with TestClient(app) as client:
            assert client.get("/api/auth/oura").status_code == 500

    def test_forwarded_headers_shape_redirect_uri(self):
        app, _ = _app()
        with TestClient(app) as client:
            body = client.get(
                "/api/auth/oura",
                headers={"x-forwarded-proto": "https", "x-forwarded-host": "ring.example"},
            ).json()
        assert body["redirectUri"] == "https://ring.example/api/auth/oura/callback"

    @pytest.mark.parametrize(
        "params, expected",
        [
            ({"error": "access_denied"}, "/?error=access_denied"),
            ({"state": "x"}, "/?error=no_code"),
            ({"code": "c", "state": "wrong"}, "/?error=invalid_state"),
        ],
    )
    def test_callback_errors(self, params, expected):
        app, _ = _app()
        with TestClient(app) as client:
            self._start(client)
            response = client.get("/api/auth/oura/callback", params=params, follow_redirects=False)
        assert response.headers["location"] == expected

    def test_token_exchange_failure(self):
        app, _ = _app()
        with TestClient(app) as client:
            state = self._start(client)
            response = client.get(
                "/api/auth/oura/callback",
                params={"code": "bad-code", "state": state},
                follow_redirects=False,
            )
        assert response.headers["location"] == "/?error=token_exchange_failed"

    def test_disconnect(self):
        store = SessionStore()
        store.set_tokens("s1", OuraTokens("acc"))
        app, _ = _app(store=store)
        with TestClient(app) as client:
            client.cookies.set(COOKIE, "s1")
            response = client.post("/api/auth/oura/disconnect")
        assert response.json() == {"success": True}
        assert store.get_tokens("s1") is None
