"""Error classes for the Skygear SDK.

Every failure surfaced by the SDK is a ``SkygearError``: errors reported by
the identity service are decoded from the response envelope, while
configuration, validation and transport failures are raised locally.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """General error categories reported by the identity service."""

    NOT_AUTHENTICATED = "NotAuthenticated"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    INVALID = "Invalid"
    BAD_REQUEST = "BadRequest"
    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    TOO_MANY_REQUEST = "TooManyRequest"
    INTERNAL_ERROR = "InternalError"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"

    # Raised locally, never sent by the service
    INVALID_CONFIG = "InvalidConfig"
    NETWORK_ERROR = "NetworkError"


class ErrorReason(StrEnum):
    """Specific error identifiers produced by the client itself."""

    UNEXPECTED_ERROR = "UnexpectedError"
    MISSING_CAPABILITY = "MissingCapability"
    INVALID_ENDPOINT = "InvalidEndpoint"
    INVALID_ARGUMENT = "InvalidArgument"
    CONNECTION_FAILED = "ConnectionFailed"


class SkygearError(Exception):
    """Base error with structured information.

    ``kind`` is the general category (the wire ``name`` field) and ``name``
    the specific identifier (the wire ``reason`` field).
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind | str = ErrorKind.INTERNAL_ERROR,
        name: ErrorReason | str = ErrorReason.UNEXPECTED_ERROR,
        info: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = str(kind)
        self.name = str(name)
        self.info = info
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "message": self.message,
            "kind": self.kind,
            "name": self.name,
            "info": self.info,
            "status_code": self.status_code,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(kind={self.kind!r}, name={self.name!r}, "
            f"message={self.message!r})"
        )


class InvalidConfigError(SkygearError):
    """Invalid SDK configuration or a missing required capability."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        name: ErrorReason | str = ErrorReason.MISSING_CAPABILITY,
    ) -> None:
        super().__init__(
            message,
            ErrorKind.INVALID_CONFIG,
            name,
            {"field": field} if field else None,
        )
        self.field = field


class ValidationError(SkygearError):
    """Caller input rejected before any request was made."""

    def __init__(
        self,
        message: str,
        *,
        info: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorKind.INVALID,
            ErrorReason.INVALID_ARGUMENT,
            info,
        )


class NetworkError(SkygearError):
    """Network request failed before a response was received."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorKind.NETWORK_ERROR,
            ErrorReason.CONNECTION_FAILED,
            {"cause": str(cause)} if cause else None,
        )
        self.__cause__ = cause
