"""Retry-on-stale-token policy.

A response carrying ``x-skygear-try-refresh-token: true`` asks the client
to refresh its access token. The policy refreshes and retries at most
once per logical call.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING

import httpx

from ..telemetry import get_logger
from .errors import ErrorFactory

if TYPE_CHECKING:
    from ..types import RefreshTokenFunction

TRY_REFRESH_TOKEN_HEADER = "x-skygear-try-refresh-token"


class RetryState(StrEnum):
    """States of one logical call."""

    INITIAL = "initial"
    REFRESHING = "refreshing"
    RETRIED = "retried"
    DONE = "done"


def should_refresh_token(response: httpx.Response) -> bool:
    """Check if the server signalled a stale access token."""
    return response.headers.get(TRY_REFRESH_TOKEN_HEADER) == "true"


class StaleTokenRetryPolicy:
    """Runs one logical call: one exchange, plus one retry after a refresh.

    Concurrent calls that both observe a stale token each invoke the
    refresh capability; serializing refreshes is up to that capability.
    """

    def __init__(
        self,
        refresh_token_function: RefreshTokenFunction | None,
        *,
        auto_refresh_token: bool,
    ) -> None:
        self._refresh = refresh_token_function
        self._auto_refresh_token = auto_refresh_token
        self._state = RetryState.INITIAL
        self._exchanges = 0
        self._logger = get_logger()

    @property
    def state(self) -> RetryState:
        return self._state

    @property
    def exchanges(self) -> int:
        """Number of physical exchanges performed so far."""
        return self._exchanges

    async def run(
        self,
        send: Callable[[int], Awaitable[httpx.Response]],
    ) -> httpx.Response:
        """Execute the call.

        Args:
            send: Performs one physical exchange given its attempt number.
                Headers must be prepared inside it so the retry sees the
                refreshed token.

        Returns:
            The final response.

        Raises:
            InvalidConfigError: If a refresh is requested but no refresh
                capability is configured.
        """
        if self._state is not RetryState.INITIAL:
            msg = "retry policy instances serve a single call"
            raise RuntimeError(msg)

        response = await self._send(send)
        if not (should_refresh_token(response) and self._auto_refresh_token):
            self._state = RetryState.DONE
            return response

        if self._refresh is None:
            raise ErrorFactory.missing_capability("refresh_token_function")

        self._state = RetryState.REFRESHING
        self._logger.info("Access token is stale, refreshing")
        refreshed = await self._refresh()
        if not refreshed:
            self._logger.warning("Token refresh failed, not retrying")
            self._state = RetryState.DONE
            return response

        self._state = RetryState.RETRIED
        # Never refresh again, whatever the retried response says
        return await self._send(send)

    async def _send(
        self,
        send: Callable[[int], Awaitable[httpx.Response]],
    ) -> httpx.Response:
        attempt = self._exchanges
        self._exchanges += 1
        return await send(attempt)
