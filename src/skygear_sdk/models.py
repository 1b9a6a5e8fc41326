"""Pydantic models for the Skygear SDK.

Models mirror the identity service's snake_case wire format. They are
frozen, and unknown fields are kept so newer server payloads survive a
round trip through the SDK.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")


class User(_WireModel):
    """User record."""

    id: str
    created_at: datetime | None = None
    last_login_at: datetime | None = None
    is_verified: bool = False
    is_disabled: bool = False
    verify_info: dict[str, bool] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class Identity(_WireModel):
    """Identity (password, OAuth or custom token) attached to a user."""

    id: str
    type: str
    login_id_key: str | None = None
    login_id: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)
    provider_type: str | None = None
    provider_user_id: str | None = None
    raw_profile: dict[str, Any] | None = None


class AuthResponse(_WireModel):
    """Result of a completed authentication."""

    user: User
    identity: Identity | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    session_id: str | None = None
    mfa_bearer_token: str | None = None


class AuthenticationSession(_WireModel):
    """Partial authentication: a second factor is still required."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    token: str = Field(..., min_length=1, alias="authn_session_token")
    step: str | None = None
    mfa: dict[str, Any] = Field(default_factory=dict)


class SessionUserAgent(_WireModel):
    """Parsed user agent of a session."""

    raw: str = ""
    name: str = ""
    version: str = ""
    os: str = ""
    os_version: str = ""
    device_name: str = ""
    device_model: str = ""


class Session(_WireModel):
    """Login session of the current user."""

    id: str
    identity_id: str | None = None
    created_at: datetime | None = None
    last_accessed_at: datetime | None = None
    created_by_ip: str | None = None
    last_accessed_by_ip: str | None = None
    user_agent: SessionUserAgent = Field(default_factory=SessionUserAgent)
    name: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class Authenticator(_WireModel):
    """MFA authenticator. TOTP and OOB variants share this model."""

    id: str
    type: Literal["totp", "oob"]
    created_at: datetime | None = None
    activated_at: datetime | None = None

    # TOTP
    display_name: str | None = None

    # OOB
    channel: Literal["sms", "email"] | None = None
    masked_phone: str | None = None
    masked_email: str | None = None


class CreateNewTOTPResult(_WireModel):
    """Newly created, not yet activated TOTP authenticator."""

    authenticator_id: str
    authenticator_type: str = "totp"
    secret: str
    otpauth_uri: str
    qr_code_image_uri: str | None = None


class CreateNewOOBResult(_WireModel):
    """Newly created, not yet activated OOB authenticator."""

    authenticator_id: str
    authenticator_type: str = "oob"
    channel: Literal["sms", "email"]


class ActivateTOTPResult(_WireModel):
    recovery_codes: list[str] = Field(default_factory=list)


class ActivateOOBResult(_WireModel):
    recovery_codes: list[str] = Field(default_factory=list)


class LoginID(BaseModel):
    """Login identifier as a key/value pair, e.g. ``email`` -> address."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    value: str


class PresignUploadResponse(_WireModel):
    asset_name: str
    url: str
    method: str = "PUT"
    headers: list[dict[str, str]] = Field(default_factory=list)


class PresignUploadFormResponse(_WireModel):
    url: str


class OIDCConfiguration(_WireModel):
    """OpenID Connect discovery document of the auth gear."""

    authorization_endpoint: str
    token_endpoint: str | None = None
    userinfo_endpoint: str | None = None
    end_session_endpoint: str | None = None
    revocation_endpoint: str | None = None


class PKCEChallenge(BaseModel):
    """PKCE challenge data for the OAuth authorization code flow."""

    model_config = ConfigDict(frozen=True)

    code_verifier: str = Field(..., min_length=43, max_length=128)
    code_challenge: str = Field(..., min_length=43)
    code_challenge_method: str = Field(default="S256")

    @field_validator("code_challenge_method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Validate PKCE method is S256 (plain is insecure)."""
        if v != "S256":
            msg = "Only S256 code_challenge_method is supported"
            raise ValueError(msg)
        return v
