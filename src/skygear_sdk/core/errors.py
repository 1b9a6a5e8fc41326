"""Centralized error factory for the Skygear SDK.

Provides consistent error creation for service-reported errors, undecodable
responses and transport failures.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import (
    ErrorKind,
    ErrorReason,
    InvalidConfigError,
    NetworkError,
    SkygearError,
)


class ErrorFactory:
    """Centralized error creation with consistent structure."""

    @staticmethod
    def from_error_payload(
        payload: Any = None,
        *,
        status_code: int | None = None,
    ) -> SkygearError:
        """Decode the ``error`` member of a response envelope.

        Args:
            payload: Value of the ``error`` key, or None when the envelope
                carried neither ``result`` nor ``error``.
            status_code: HTTP status of the response, when known.

        Returns:
            SkygearError carrying the service's kind, name and info.
        """
        if not isinstance(payload, dict):
            return ErrorFactory.malformed_envelope(status_code=status_code)

        info = payload.get("info")
        return SkygearError(
            str(payload.get("message") or "unknown error"),
            payload.get("name") or ErrorKind.INTERNAL_ERROR,
            payload.get("reason") or ErrorReason.UNEXPECTED_ERROR,
            info if isinstance(info, dict) else None,
            status_code=status_code,
        )

    @staticmethod
    def malformed_envelope(*, status_code: int | None = None) -> SkygearError:
        """Envelope carried neither a usable result nor an error."""
        return SkygearError(
            "failed to decode response",
            ErrorKind.INTERNAL_ERROR,
            ErrorReason.UNEXPECTED_ERROR,
            status_code=status_code,
        )

    @staticmethod
    def unexpected_status(status_code: int) -> SkygearError:
        """Body was not JSON and the status was not 2xx."""
        return SkygearError(
            "unexpected status code",
            ErrorKind.INTERNAL_ERROR,
            ErrorReason.UNEXPECTED_ERROR,
            {"status_code": status_code},
            status_code=status_code,
        )

    @staticmethod
    def undecodable_body(status_code: int | None = None) -> SkygearError:
        """Body of a 2xx response was not JSON."""
        return SkygearError(
            "failed to decode response JSON",
            ErrorKind.INTERNAL_ERROR,
            ErrorReason.UNEXPECTED_ERROR,
            status_code=status_code,
        )

    @staticmethod
    def from_exception(exc: httpx.HTTPError) -> NetworkError:
        """Wrap an httpx transport failure.

        Args:
            exc: Exception raised while sending the request.

        Returns:
            NetworkError chained to ``exc``.
        """
        if isinstance(exc, httpx.TimeoutException):
            return NetworkError(f"Request timed out: {exc}", cause=exc)

        if isinstance(exc, httpx.ConnectError):
            return NetworkError(f"Connection failed: {exc}", cause=exc)

        return NetworkError(f"HTTP error: {exc}", cause=exc)

    @staticmethod
    def missing_capability(capability: str) -> InvalidConfigError:
        """A required collaborator was not configured."""
        return InvalidConfigError(
            f"missing {capability} in api client",
            field=capability,
        )
