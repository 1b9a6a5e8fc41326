"""Core components of the Skygear SDK.

The request pipeline and its building blocks, plus the helpers the auth
flow layer composes.
"""

from __future__ import annotations

from .envelope import decode_envelope, decode_result
from .errors import ErrorFactory
from .headers import HeaderPreparer
from .pipeline import RequestPipeline
from .retry import RetryState, StaleTokenRetryPolicy, should_refresh_token
from .session import AuthenticationAttempt, AuthenticationState
from .transport import TransportAdapter, create_async_http_client

__all__ = [
    "decode_envelope",
    "decode_result",
    "ErrorFactory",
    "HeaderPreparer",
    "RequestPipeline",
    "RetryState",
    "StaleTokenRetryPolicy",
    "should_refresh_token",
    "AuthenticationAttempt",
    "AuthenticationState",
    "TransportAdapter",
    "create_async_http_client",
]
