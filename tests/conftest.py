"""
Shared test fixtures for Skygear SDK tests.

Provides configuration, a scripted identity service behind
httpx.MockTransport, and client construction helpers.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from skygear_sdk.config import ClientConfig, TelemetryConfig


class FakeService:
    """Scripted identity service that records every request it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[httpx.Response | Callable[[httpx.Request], httpx.Response]] = []

    def queue(
        self,
        body: Any = None,
        *,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> None:
        """Queue the next response; ``content`` overrides the JSON body."""
        if content is None:
            content = json.dumps(body).encode("utf-8")
        self._responses.append(
            httpx.Response(status_code, headers=headers, content=content)
        )

    def queue_result(self, result: Any, **kwargs: Any) -> None:
        self.queue({"result": result}, **kwargs)

    def queue_error(self, error: dict[str, Any], **kwargs: Any) -> None:
        self.queue({"error": error}, **kwargs)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        return self._responses.pop(0)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def base_config() -> ClientConfig:
    """Provide a basic SDK configuration for testing."""
    return ClientConfig(
        api_key="test-api-key",
        endpoint="https://myapp.skygearapp.com",
        telemetry=TelemetryConfig(enabled=False),
    )


@pytest.fixture
def fake_service() -> FakeService:
    return FakeService()


@pytest.fixture
def sample_user() -> dict[str, Any]:
    return {
        "id": "user-1",
        "created_at": "2019-01-01T00:00:00Z",
        "last_login_at": "2019-01-02T00:00:00Z",
        "is_verified": True,
        "is_disabled": False,
        "verify_info": {"a@b.com": True},
        "metadata": {},
    }


@pytest.fixture
def sample_identity() -> dict[str, Any]:
    return {
        "id": "identity-1",
        "type": "password",
        "login_id_key": "email",
        "login_id": "a@b.com",
        "claims": {"email": "a@b.com"},
    }
