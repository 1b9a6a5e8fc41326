"""Authentication attempt tracking for multi-factor flows.

A login that still needs a second factor yields an authentication-session
token. Every following MFA step sends that token back until the service
answers with a full auth response.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

from ..telemetry import get_logger

if TYPE_CHECKING:
    from ..errors import SkygearError
    from ..types import JSONObject

AUTHN_SESSION_TOKEN_FIELD = "authn_session_token"


class AuthenticationState(StrEnum):
    """States of one authentication attempt."""

    NO_SESSION = "no_session"
    PENDING_MFA = "pending_mfa"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class AuthenticationAttempt:
    """State of one in-progress authentication."""

    def __init__(self) -> None:
        self._state = AuthenticationState.NO_SESSION
        self._token: str | None = None
        self._last_error: SkygearError | None = None
        self._logger = get_logger()

    @property
    def state(self) -> AuthenticationState:
        return self._state

    @property
    def token(self) -> str | None:
        """Authentication-session token currently held, if any."""
        return self._token

    @token.setter
    def token(self, value: str | None) -> None:
        self._token = value
        self._state = (
            AuthenticationState.PENDING_MFA if value else AuthenticationState.NO_SESSION
        )

    @property
    def last_error(self) -> SkygearError | None:
        return self._last_error

    def reset(self) -> None:
        """Abandon the attempt and discard any held token."""
        self._state = AuthenticationState.NO_SESSION
        self._token = None
        self._last_error = None

    def thread(self, payload: JSONObject) -> JSONObject:
        """Return ``payload`` with the held session token merged in.

        The field is omitted entirely when no token is held.
        """
        if self._token is None:
            return payload
        return {**payload, AUTHN_SESSION_TOKEN_FIELD: self._token}

    def on_result(self, result: Any) -> None:
        """Advance the state from a successful step's result."""
        if not isinstance(result, dict):
            return

        if result.get("access_token"):
            self._state = AuthenticationState.AUTHENTICATED
            self._token = None
            self._last_error = None
            return

        token = result.get(AUTHN_SESSION_TOKEN_FIELD)
        if token:
            self._state = AuthenticationState.PENDING_MFA
            self._token = token
            self._last_error = None
            self._logger.debug("Second factor required", step=result.get("step"))

    def on_error(self, error: SkygearError) -> None:
        """Record a failed step.

        The token is kept so the caller can resubmit the step; ``reset``
        abandons the attempt.
        """
        self._state = AuthenticationState.FAILED
        self._last_error = error
