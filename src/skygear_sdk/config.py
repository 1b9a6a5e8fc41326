"""Configuration for the Skygear SDK.

Uses Pydantic v2 for validation. Auth and asset endpoints are derived from
the app endpoint unless given explicitly.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .errors import ErrorReason, InvalidConfigError

_SCHEME_PREFIX = re.compile(r"^(http://|https://|//)(.*)$")


def remove_trailing_slash(s: str) -> str:
    """Strip every trailing slash from ``s``."""
    return s.rstrip("/")


def gear_endpoint(app_endpoint: str, gear_subdomain: str) -> str:
    """Derive a gear endpoint by inserting ``<gear>.`` before the host.

    Args:
        app_endpoint: App endpoint, with ``http://``, ``https://`` or
            protocol-relative ``//`` prefix.
        gear_subdomain: Gear subdomain, e.g. ``accounts`` or ``assets``.

    Returns:
        The gear endpoint.

    Raises:
        InvalidConfigError: If the endpoint has no recognized prefix.
    """
    endpoint = _SCHEME_PREFIX.sub(
        lambda m: f"{m.group(1)}{gear_subdomain}.{m.group(2)}",
        app_endpoint,
    )
    if endpoint == app_endpoint:
        raise InvalidConfigError(
            "invalid app endpoint",
            field="endpoint",
            name=ErrorReason.INVALID_ENDPOINT,
        )
    return endpoint


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "skygear-sdk"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known name."""
        supported = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in supported:
            msg = f"Unsupported log level: {v}. Supported: {supported}"
            raise ValueError(msg)
        return v.upper()


class ClientConfig(BaseModel):
    """Main configuration for the Skygear SDK."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # Required
    api_key: str = Field(..., min_length=1)
    endpoint: str = Field(..., min_length=1)

    # Gear endpoints (auto-derived from endpoint if not set)
    auth_endpoint: str | None = None
    asset_endpoint: str | None = None

    user_agent: str | None = None
    # Used by the OAuth flow when no callback URL is passed explicitly
    callback_url: str | None = None

    # HTTP settings
    timeout: Annotated[float, Field(gt=0, le=300)] = 30.0
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("endpoint")
    @classmethod
    def normalize_endpoint(cls, v: str) -> str:
        """Remove trailing slashes from the app endpoint."""
        return remove_trailing_slash(v)

    @model_validator(mode="after")
    def set_gear_endpoints(self) -> Self:
        """Derive auth and asset endpoints from the app endpoint."""
        # Use object.__setattr__ since model is frozen
        if not self.auth_endpoint:
            object.__setattr__(
                self, "auth_endpoint", gear_endpoint(self.endpoint, "accounts")
            )
        if not self.asset_endpoint:
            object.__setattr__(
                self, "asset_endpoint", gear_endpoint(self.endpoint, "assets")
            )
        return self

    def with_endpoint(
        self,
        endpoint: str,
        auth_endpoint: str | None = None,
        asset_endpoint: str | None = None,
    ) -> Self:
        """Create new config pointing at another app endpoint.

        Gear endpoints are re-derived unless passed explicitly.
        """
        return self.with_overrides(
            endpoint=endpoint,
            auth_endpoint=auth_endpoint,
            asset_endpoint=asset_endpoint,
        )

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "SKYGEAR_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        api_key = get_env("API_KEY")
        if not api_key:
            msg = f"{prefix}API_KEY environment variable is required"
            raise ValueError(msg)

        endpoint = get_env("ENDPOINT")
        if not endpoint:
            msg = f"{prefix}ENDPOINT environment variable is required"
            raise ValueError(msg)

        return cls(
            api_key=api_key,
            endpoint=endpoint,
            auth_endpoint=get_env("AUTH_ENDPOINT"),
            asset_endpoint=get_env("ASSET_ENDPOINT"),
            user_agent=get_env("USER_AGENT"),
            callback_url=get_env("CALLBACK_URL"),
            timeout=float(get_env("TIMEOUT", "30.0")),
            connect_timeout=float(get_env("CONNECT_TIMEOUT", "10.0")),
        )
