"""Unit tests for tracing and logging setup."""

from __future__ import annotations

import json
import logging

import pytest
from opentelemetry import trace

from skygear_sdk import telemetry
from skygear_sdk.client import SkygearClient
from skygear_sdk.config import ClientConfig, TelemetryConfig
from skygear_sdk.errors import SkygearError


@pytest.fixture(autouse=True)
def reset_telemetry(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(telemetry, "_tracer", None)
    monkeypatch.setattr(telemetry, "_logger", None)
    monkeypatch.setattr(telemetry, "_applied", None)


class TestConfigureTelemetry:
    def test_disabled_uses_noop_tracer(self) -> None:
        telemetry.configure_telemetry(TelemetryConfig(enabled=False))

        assert isinstance(telemetry.get_tracer(), trace.NoOpTracer)

    def test_disabled_drops_log_events(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="skygear-sdk")
        telemetry.configure_telemetry(TelemetryConfig(enabled=False))

        telemetry.get_logger().warning("Request failed")

        assert caplog.records == []

    def test_log_level_filters_and_renders_json(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="my-app")
        telemetry.configure_telemetry(
            TelemetryConfig(service_name="my-app", log_level="warning")
        )
        logger = telemetry.get_logger()

        logger.info("Authenticated", user_id="u")
        logger.warning("Request failed", attempt=1)

        assert len(caplog.records) == 1
        event = json.loads(caplog.records[0].getMessage())
        assert event["event"] == "Request failed"
        assert event["level"] == "warning"
        assert event["service"] == "my-app"
        assert event["attempt"] == 1

    def test_reapplying_same_config_keeps_logger(self) -> None:
        config = TelemetryConfig(service_name="my-app")
        telemetry.configure_telemetry(config)
        logger = telemetry.get_logger()

        telemetry.configure_telemetry(TelemetryConfig(service_name="my-app"))

        assert telemetry.get_logger() is logger

    def test_client_applies_its_telemetry_config(self) -> None:
        config = ClientConfig(
            api_key="k",
            endpoint="https://myapp.skygearapp.com",
            telemetry=TelemetryConfig(enabled=False),
        )

        SkygearClient(config, http_client=object())  # type: ignore[arg-type]

        assert isinstance(telemetry.get_tracer(), trace.NoOpTracer)


class TestTracedAsync:
    async def test_returns_result(self) -> None:
        @telemetry.traced_async()
        async def operation(x: int) -> int:
            return x * 2

        assert await operation(21) == 42
        assert operation.__name__ == "operation"

    async def test_propagates_sdk_errors(self) -> None:
        @telemetry.traced_async("custom.span")
        async def failing() -> None:
            raise SkygearError("boom", "Invalid", "InvalidOTP")

        with pytest.raises(SkygearError, match="boom"):
            await failing()
