"""Skygear Python SDK."""

from .client import SkygearClient
from .config import ClientConfig, TelemetryConfig, gear_endpoint
from .core.session import AuthenticationState
from .errors import (
    ErrorKind,
    ErrorReason,
    InvalidConfigError,
    NetworkError,
    SkygearError,
    ValidationError,
)
from .models import AuthenticationSession, AuthResponse
from .pkce import create_pkce_challenge
from .telemetry import configure_telemetry

__all__ = [
    "SkygearClient",
    "ClientConfig",
    "TelemetryConfig",
    "gear_endpoint",
    "AuthenticationState",
    "ErrorKind",
    "ErrorReason",
    "InvalidConfigError",
    "NetworkError",
    "SkygearError",
    "ValidationError",
    "AuthenticationSession",
    "AuthResponse",
    "create_pkce_challenge",
    "configure_telemetry",
]

__version__ = "0.1.0"
