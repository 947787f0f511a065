"""Tests for the Oura OAuth client and token refresh."""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs, urlparse

import httpx

from ringchat.core.session.store import OuraTokens, SessionStore
from ringchat.domains.wearable.connectors.oauth import OuraOAuthClient, TokenManager
from ringchat.domains.wearable.connectors.oura import OuraProvider
from ringchat.domains.wearable.domain_logic.data_fetch import fetch_wearable_data
from ringchat.domains.wearable.domain_logic.models import DataTypeFlags


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeTokenEndpoint:
    def __init__(self, status: int = 200, payload: dict | None = None) -> None:
        self.status = status
        self.payload = payload if payload is not None else {
            "access_token": "new-access",
            "refresh_token": "new-refresh",
            "expires_in": 86400,
        }
        self.forms: list[dict[str, list[str]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.forms.append(parse_qs(request.content.decode()))
        return httpx.Response(self.status, json=self.payload)


def _client(endpoint: FakeTokenEndpoint, configured: bool = True) -> OuraOAuthClient:
    return OuraOAuthClient(
        "client-id" if configured else "",
        "client-secret" if configured else "",
        token_url="https://auth.test/oauth/token",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(endpoint)),
    )


class TestOAuthClient:
    def test_authorization_url(self):
        client = _client(FakeTokenEndpoint())
        url = client.authorization_url("http://localhost:8001/api/auth/oura/callback", "abc")
        query = parse_qs(urlparse(url).query)
        assert query["client_id"] == ["client-id"]
        assert query["state"] == ["abc"]
        assert query["scope"] == ["personal daily heartrate"]
        assert query["response_type"] == ["code"]

    def test_new_state_is_random(self):
        assert OuraOAuthClient.new_state() != OuraOAuthClient.new_state()

    def test_exchange_code(self):
        endpoint = FakeTokenEndpoint()
        tokens = _run(_client(endpoint).exchange_code("the-code", "http://x/cb"))
        assert tokens.access_token == "new-access"
        assert tokens.refresh_token == "new-refresh"
        assert tokens.expires_at is not None
        assert endpoint.forms[0]["grant_type"] == ["authorization_code"]
        assert endpoint.forms[0]["code"] == ["the-code"]

    def test_exchange_failure_returns_none(self):
        tokens = _run(_client(FakeTokenEndpoint(status=400, payload={"error": "bad"})).exchange_code("c", "u"))
        assert tokens is None

    def test_unconfigured_client_does_not_call_out(self):
        endpoint = FakeTokenEndpoint()
        client = _client(endpoint, configured=False)
        assert not client.is_configured()
        assert _run(client.refresh("r")) is None
        assert endpoint.forms == []


class TestTokenManager:
    NOW = 1_000_000.0

    def _manager(self, tokens: OuraTokens, endpoint: FakeTokenEndpoint) -> tuple[TokenManager, SessionStore]:
        store = SessionStore()
        store.set_tokens("s1", tokens)
        return TokenManager(store, _client(endpoint), clock=lambda: self.NOW), store

    def test_fresh_token_is_returned_as_is(self):
        endpoint = FakeTokenEndpoint()
        manager, _ = self._manager(OuraTokens("access", "refresh", self.NOW + 3600), endpoint)
        assert _run(manager.ensure_valid_access_token("s1")) == "access"
        assert endpoint.forms == []

    def test_token_near_expiry_is_refreshed_and_stored(self):
        endpoint = FakeTokenEndpoint()
        manager, store = self._manager(OuraTokens("access", "refresh", self.NOW + 30), endpoint)
        assert _run(manager.ensure_valid_access_token("s1")) == "new-access"
        assert endpoint.forms[0]["grant_type"] == ["refresh_token"]
        assert endpoint.forms[0]["refresh_token"] == ["refresh"]
        assert store.get_tokens("s1").access_token == "new-access"

    def test_failed_refresh_returns_none(self):
        endpoint = FakeTokenEndpoint(status=401, payload={})
        manager, _ = self._manager(OuraTokens("access", "refresh", self.NOW - 10), endpoint)
        assert _run(manager.ensure_valid_access_token("s1")) is None

    def test_non_expiring_token(self):
        manager, _ = self._manager(OuraTokens("pat"), FakeTokenEndpoint())
        assert _run(manager.ensure_valid_access_token("s1")) == "pat"

    def test_unknown_session(self):
        manager, _ = self._manager(OuraTokens("pat"), FakeTokenEndpoint())
        assert _run(manager.ensure_valid_access_token("other")) is None


class SlowSingleUseTokenEndpoint:
    """Token endpoint with latency whose refresh tokens work only once."""

    def __init__(self) -> None:
        self.refresh_tokens_used: list[str] = []
        self._issued = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        refresh_token = form["refresh_token"][0]
        await asyncio.sleep(0.01)
        if refresh_token in self.refresh_tokens_used:
            return httpx.Response(400, json={"error": "invalid_grant"})
        self.refresh_tokens_used.append(refresh_token)
        self._issued += 1
        return httpx.Response(200, json={
            "access_token": f"access-{self._issued}",
            "refresh_token": f"refresh-{self._issued}",
            "expires_in": 86400,
        })


def _oura_api(request: httpx.Request) -> httpx.Response:
    if request.headers["Authorization"] != "Bearer access-1":
        return httpx.Response(401, json={"detail": "expired"})
    name = request.url.path.rsplit("/", 1)[-1]
    if name == "heartrate":
        return httpx.Response(200, json={"data": [
            {"bpm": 60, "source": "rest", "timestamp": "2025-06-14T03:00:00+00:00"},
        ]})
    return httpx.Response(200, json={"data": [{"id": name, "day": "2025-06-14", "score": 80}]})


class TestConcurrentRefresh:
    NOW = 1_000_000.0

    def _setup(self) -> tuple[TokenManager, SessionStore, SlowSingleUseTokenEndpoint]:
        endpoint = SlowSingleUseTokenEndpoint()
        store = SessionStore()
        store.set_tokens("s1", OuraTokens("old-access", "refresh-0", self.NOW - 10))
        oauth = OuraOAuthClient(
            "client-id",
            "client-secret",
            token_url="https://auth.test/oauth/token",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(endpoint)),
        )
        return TokenManager(store, oauth, clock=lambda: self.NOW), store, endpoint

    def test_concurrent_callers_share_one_refresh(self):
        manager, store, endpoint = self._setup()

        async def _many():
            return await asyncio.gather(*(manager.ensure_valid_access_token("s1") for _ in range(5)))

        assert _run(_many()) == ["access-1"] * 5
        assert endpoint.refresh_tokens_used == ["refresh-0"]
        assert store.get_tokens("s1").refresh_token == "refresh-1"

    def test_expired_token_fetch_fills_every_category(self):
        manager, store, endpoint = self._setup()
        provider = OuraProvider(
            manager,
            store,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(_oura_api)),
            api_base="https://api.test/v2/usercollection",
        )
        types = DataTypeFlags(sleep=True, activity=True, readiness=True, heart_rate=True)
        data = _run(fetch_wearable_data(provider, "s1", "2025-06-14", "2025-06-14", types))
        assert endpoint.refresh_tokens_used == ["refresh-0"]
        assert len(data.sleep) == 1
        assert len(data.activity) == 1
        assert len(data.readiness) == 1
        assert len(data.heart_rate.readings) == 1
