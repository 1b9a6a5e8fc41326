"""Unit tests for the authenticated request pipeline."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from skygear_sdk.core.headers import HeaderPreparer
from skygear_sdk.core.pipeline import RequestPipeline, join_url
from skygear_sdk.core.transport import TransportAdapter
from skygear_sdk.errors import InvalidConfigError, NetworkError, SkygearError

ENDPOINT = "https://myapp.skygearapp.com"
STALE = {"x-skygear-try-refresh-token": "true"}


class TokenState:
    def __init__(self, token: str | None = None) -> None:
        self.token = token


def make_pipeline(
    fake_service: Any,
    state: TokenState,
    refresh: Any = None,
) -> RequestPipeline:
    headers = HeaderPreparer("test-api-key", lambda: state.token)
    transport = TransportAdapter(fake_service.http_client())
    return RequestPipeline(ENDPOINT, headers, transport, refresh_token_function=refresh)


class TestUrlAndHeaders:
    """Request construction."""

    def test_join_url(self) -> None:
        assert join_url(ENDPOINT, "/_auth/me") == f"{ENDPOINT}/_auth/me"
        assert join_url(ENDPOINT, "_auth/me") == f"{ENDPOINT}/_auth/me"

    async def test_query_is_url_encoded(self, fake_service: Any) -> None:
        fake_service.queue_result("ok")
        pipeline = make_pipeline(fake_service, TokenState())

        await pipeline.get("/_auth/sso/p/auth_handler", query=[("code", "a b"), ("state", "x&y")])

        url = fake_service.last_request.url
        assert url.path == "/_auth/sso/p/auth_handler"
        assert url.params["code"] == "a b"
        assert url.params["state"] == "x&y"

    async def test_json_body_sets_content_type(self, fake_service: Any) -> None:
        fake_service.queue_result({"ok": True})
        pipeline = make_pipeline(fake_service, TokenState("tok"))

        await pipeline.post("/_auth/me", json={})

        request = fake_service.last_request
        assert request.headers["content-type"] == "application/json"
        assert request.headers["x-skygear-api-key"] == "test-api-key"
        assert request.headers["authorization"] == "bearer tok"
        assert fake_service.json_body() == {}

    async def test_no_body_no_content_type(self, fake_service: Any) -> None:
        fake_service.queue_result("ok")
        pipeline = make_pipeline(fake_service, TokenState())

        await pipeline.get("/x")

        assert "content-type" not in fake_service.last_request.headers
        assert "authorization" not in fake_service.last_request.headers


class TestStaleTokenRetry:
    """Refresh-and-retry behavior."""

    async def test_refresh_then_retry_with_new_token(self, fake_service: Any) -> None:
        state = TokenState("old")

        async def refresh() -> bool:
            state.token = "new"
            return True

        fake_service.queue_error(
            {"name": "NotAuthenticated", "reason": "NotAuthenticated", "message": "expired"},
            status_code=401,
            headers=STALE,
        )
        fake_service.queue_result({"user": "u"})
        pipeline = make_pipeline(fake_service, state, refresh)

        result = await pipeline.post("/_auth/me", json={})

        assert result == {"user": "u"}
        assert len(fake_service.requests) == 2
        assert fake_service.requests[0].headers["authorization"] == "bearer old"
        assert fake_service.requests[1].headers["authorization"] == "bearer new"
        assert fake_service.json_body(0) == fake_service.json_body(1)

    async def test_failed_refresh_returns_original_outcome(self, fake_service: Any) -> None:
        calls = []

        async def refresh() -> bool:
            calls.append(1)
            return False

        fake_service.queue_error(
            {"name": "NotAuthenticated", "reason": "NotAuthenticated", "message": "expired"},
            status_code=401,
            headers=STALE,
        )
        pipeline = make_pipeline(fake_service, TokenState("old"), refresh)

        with pytest.raises(SkygearError) as exc_info:
            await pipeline.post("/_auth/me", json={})

        assert exc_info.value.kind == "NotAuthenticated"
        assert exc_info.value.status_code == 401
        assert len(calls) == 1
        assert len(fake_service.requests) == 1

    async def test_never_retries_twice(self, fake_service: Any) -> None:
        calls = []

        async def refresh() -> bool:
            calls.append(1)
            return True

        fake_service.queue_result("first", headers=STALE)
        fake_service.queue_result("second", headers=STALE)
        pipeline = make_pipeline(fake_service, TokenState("old"), refresh)

        result = await pipeline.post("/x", json={})

        assert result == "second"
        assert len(calls) == 1
        assert len(fake_service.requests) == 2

    async def test_auto_refresh_disabled_per_call(self, fake_service: Any) -> None:
        calls = []

        async def refresh() -> bool:
            calls.append(1)
            return True

        fake_service.queue_result("stale", headers=STALE)
        pipeline = make_pipeline(fake_service, TokenState("old"), refresh)

        result = await pipeline.post("/_auth/refresh", json={}, auto_refresh_token=False)

        assert result == "stale"
        assert calls == []

    async def test_no_refresh_capability_ignores_signal_by_default(
        self, fake_service: Any
    ) -> None:
        fake_service.queue_result("stale", headers=STALE)
        pipeline = make_pipeline(fake_service, TokenState("old"))

        assert await pipeline.post("/x", json={}) == "stale"
        assert len(fake_service.requests) == 1

    async def test_requested_refresh_without_capability_is_config_error(
        self, fake_service: Any
    ) -> None:
        fake_service.queue_result("stale", headers=STALE)
        pipeline = make_pipeline(fake_service, TokenState("old"))

        with pytest.raises(InvalidConfigError):
            await pipeline.post("/x", json={}, auto_refresh_token=True)

    async def test_header_value_must_be_literal_true(self, fake_service: Any) -> None:
        calls = []

        async def refresh() -> bool:
            calls.append(1)
            return True

        fake_service.queue_result("ok", headers={"x-skygear-try-refresh-token": "1"})
        pipeline = make_pipeline(fake_service, TokenState("old"), refresh)

        assert await pipeline.post("/x", json={}) == "ok"
        assert calls == []


class TestBodyDecoding:
    """Non-JSON bodies and transport failures."""

    async def test_non_json_error_status(self, fake_service: Any) -> None:
        fake_service.queue(status_code=502, content=b"<html>Bad Gateway</html>")
        pipeline = make_pipeline(fake_service, TokenState())

        with pytest.raises(SkygearError) as exc_info:
            await pipeline.post("/x", json={})

        assert exc_info.value.message == "unexpected status code"
        assert exc_info.value.info == {"status_code": 502}

    async def test_non_json_success_status(self, fake_service: Any) -> None:
        fake_service.queue(status_code=200, content=b"not json")
        pipeline = make_pipeline(fake_service, TokenState())

        with pytest.raises(SkygearError, match="failed to decode response JSON"):
            await pipeline.post("/x", json={})

    async def test_json_error_status_uses_envelope(self, fake_service: Any) -> None:
        fake_service.queue_error(
            {"name": "Invalid", "reason": "ValidationFailed", "message": "bad", "info": {"a": 1}},
            status_code=400,
        )
        pipeline = make_pipeline(fake_service, TokenState())

        with pytest.raises(SkygearError) as exc_info:
            await pipeline.post("/x", json={})

        assert exc_info.value.name == "ValidationFailed"
        assert exc_info.value.info == {"a": 1}

    async def test_transport_failure_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        headers = HeaderPreparer("key", lambda: None)
        transport = TransportAdapter(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        pipeline = RequestPipeline(ENDPOINT, headers, transport)

        with pytest.raises(NetworkError):
            await pipeline.post("/x", json={})

    async def test_missing_transport_is_config_error(self) -> None:
        headers = HeaderPreparer("key", lambda: None)
        pipeline = RequestPipeline(ENDPOINT, headers, TransportAdapter(None))

        with pytest.raises(InvalidConfigError, match="transport"):
            await pipeline.post("/x", json={})

    async def test_mapper_is_applied(self, fake_service: Any) -> None:
        fake_service.queue_result({"access_token": "abc"})
        pipeline = make_pipeline(fake_service, TokenState())

        token = await pipeline.post("/_auth/refresh", json={}, mapper=lambda r: r["access_token"])

        assert token == "abc"

    async def test_fetch_json_skips_envelope(self, fake_service: Any) -> None:
        fake_service.queue({"authorization_endpoint": "https://a/authorize"})
        pipeline = make_pipeline(fake_service, TokenState("tok"))

        body = await pipeline.fetch_json("https://accounts.myapp.skygearapp.com/.well-known/openid-configuration")

        assert body == {"authorization_endpoint": "https://a/authorize"}
        assert "authorization" not in fake_service.last_request.headers
