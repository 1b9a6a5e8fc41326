"""Credential and metadata headers for outgoing requests."""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..types import ExtraSessionInfoFunction

API_KEY_HEADER = "x-skygear-api-key"
AUTHORIZATION_HEADER = "authorization"
USER_AGENT_HEADER = "user-agent"
EXTRA_INFO_HEADER = "x-skygear-extra-info"


def encode_extra_info(extra: object) -> str:
    """Base64-encode the JSON serialization of ``extra``."""
    raw = json.dumps(extra, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


class HeaderPreparer:
    """Builds headers from the client's state at the moment of sending.

    The access token is read through a getter so that a token written by
    the refresh capability is picked up by the retried exchange.
    """

    def __init__(
        self,
        api_key: str,
        access_token: Callable[[], str | None],
        *,
        user_agent: str | None = None,
        extra_session_info: ExtraSessionInfoFunction | None = None,
    ) -> None:
        """Initialize header preparer.

        Args:
            api_key: Static API key.
            access_token: Returns the current access token, if any.
            user_agent: Optional user agent string.
            extra_session_info: Optional async supplier of extra info.
        """
        self._api_key = api_key
        self._access_token = access_token
        self._user_agent = user_agent
        self._extra_session_info = extra_session_info

    async def prepare(self) -> dict[str, str]:
        """Compute headers for one physical exchange."""
        headers: dict[str, str] = {API_KEY_HEADER: self._api_key}

        token = self._access_token()
        if token:
            headers[AUTHORIZATION_HEADER] = f"bearer {token}"

        if self._user_agent is not None:
            headers[USER_AGENT_HEADER] = self._user_agent

        if self._extra_session_info is not None:
            extra = await self._extra_session_info()
            if extra is not None:
                headers[EXTRA_INFO_HEADER] = encode_extra_info(extra)

        return headers
