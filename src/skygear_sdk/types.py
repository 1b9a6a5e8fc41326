"""Type definitions for the Skygear SDK."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, TypeAlias, TypeVar
from urllib.parse import urlencode

import httpx

JSONObject: TypeAlias = dict[str, Any]

HTTPMethod = Literal["GET", "POST", "DELETE"]

T = TypeVar("T")

# Maps the untyped ``result`` payload to a concrete domain type
ResultMapper: TypeAlias = Callable[[Any], T]

RefreshTokenFunction: TypeAlias = Callable[[], Awaitable[bool]]
ExtraSessionInfoFunction: TypeAlias = Callable[[], Awaitable[JSONObject | None]]


class HTTPTransport(Protocol):
    """Protocol for the injected HTTP implementation.

    ``httpx.AsyncClient`` satisfies it.
    """

    def build_request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
    ) -> httpx.Request:
        """Construct a request without sending it."""
        ...

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a request and return the raw response."""
        ...


def encode_query(query: Sequence[tuple[str, str]] | None) -> str:
    """URL-encode query pairs with a leading ``?``, or ``""`` if empty."""
    if not query:
        return ""
    return "?" + urlencode(list(query))


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical API call."""

    method: HTTPMethod
    path: str
    json: JSONObject | None = None
    query: tuple[tuple[str, str], ...] | None = None
    auto_refresh_token: bool | None = None

    @property
    def path_with_query(self) -> str:
        """Path with URL-encoded query parameters appended."""
        return self.path + encode_query(self.query)

    @property
    def has_body(self) -> bool:
        return self.json is not None
