"""OAuth path and callback URL resolution.

Shared by the authorization URL, handler, link and unlink operations.
"""

from __future__ import annotations

from typing import Literal
from urllib.parse import quote

from ..errors import ErrorReason, InvalidConfigError, ValidationError

OAuthAction = Literal["login", "link"]

_AUTH_URL_SUFFIX: dict[str, str] = {
    "login": "login_auth_url",
    "link": "link_auth_url",
}


def encode_provider_id(provider_id: str) -> str:
    """Percent-encode a provider ID for use as one path segment."""
    return quote(provider_id, safe="-_.!~*'()")


def provider_path(provider_id: str, suffix: str) -> str:
    """Build ``/_auth/sso/<provider>/<suffix>``."""
    return f"/_auth/sso/{encode_provider_id(provider_id)}/{suffix}"


def authorization_url_path(provider_id: str, action: str) -> str:
    """Path of the endpoint that returns an authorization URL.

    Raises:
        ValidationError: If ``action`` is neither ``login`` nor ``link``.
    """
    suffix = _AUTH_URL_SUFFIX.get(action)
    if suffix is None:
        raise ValidationError(
            f"unknown OAuth action: {action}", info={"action": action}
        )
    return provider_path(provider_id, suffix)


def resolve_callback_url(
    callback_url: str | None,
    default_callback_url: str | None,
) -> str:
    """Pick the explicit callback URL, else the configured default.

    Raises:
        InvalidConfigError: If neither is set.
    """
    resolved = callback_url or default_callback_url
    if not resolved:
        raise InvalidConfigError(
            "callback_url is required",
            field="callback_url",
            name=ErrorReason.INVALID_ARGUMENT,
        )
    return resolved
