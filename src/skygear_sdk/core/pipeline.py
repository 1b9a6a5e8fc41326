"""Authenticated request pipeline.

Turns a logical API call into one or two HTTP exchanges and decodes the
response envelope into a result value or a ``SkygearError``.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx

from ..telemetry import get_logger, trace_operation
from ..types import RequestDescriptor
from .envelope import decode_result
from .errors import ErrorFactory
from .retry import StaleTokenRetryPolicy

if TYPE_CHECKING:
    from ..types import (
        HTTPMethod,
        JSONObject,
        RefreshTokenFunction,
        ResultMapper,
        T,
    )
    from .headers import HeaderPreparer
    from .transport import TransportAdapter


def join_url(endpoint: str, path: str) -> str:
    """Join an endpoint and a path with exactly one slash."""
    return endpoint + "/" + path.lstrip("/")


def parse_json_body(response: httpx.Response) -> Any:
    """Parse a response body, mapping failures to SDK errors."""
    try:
        return response.json()
    except ValueError as e:
        status = response.status_code
        if status < 200 or status >= 300:
            raise ErrorFactory.unexpected_status(status) from e
        raise ErrorFactory.undecodable_body(status) from e


class RequestPipeline:
    """Public entry point for enveloped API calls."""

    def __init__(
        self,
        endpoint: str,
        headers: HeaderPreparer,
        transport: TransportAdapter,
        *,
        refresh_token_function: RefreshTokenFunction | None = None,
    ) -> None:
        """Initialize request pipeline.

        Args:
            endpoint: App endpoint without trailing slash.
            headers: Header preparer, consulted on every exchange.
            transport: Transport adapter.
            refresh_token_function: Optional refresh capability.
        """
        self.endpoint = endpoint
        self._headers = headers
        self._transport = transport
        self.refresh_token_function = refresh_token_function
        self._logger = get_logger()

    async def request(
        self,
        method: HTTPMethod,
        path: str,
        *,
        json: JSONObject | None = None,
        query: Sequence[tuple[str, str]] | None = None,
        auto_refresh_token: bool | None = None,
        mapper: ResultMapper[T] | None = None,
    ) -> T | Any:
        """Perform a logical API call.

        Args:
            method: HTTP method.
            path: Path relative to the app endpoint.
            json: Optional JSON payload.
            query: Optional query pairs.
            auto_refresh_token: Refresh and retry once on a stale token.
                Defaults to whether a refresh capability is configured.
            mapper: Optional mapping from the ``result`` to a domain type.

        Returns:
            The decoded result.

        Raises:
            SkygearError: Service-reported or decode error.
            InvalidConfigError: Missing transport or refresh capability.
            NetworkError: On transport failure.
        """
        descriptor = RequestDescriptor(
            method=method,
            path=path,
            json=json,
            query=tuple(query) if query is not None else None,
            auto_refresh_token=auto_refresh_token,
        )
        return await self.execute(descriptor, mapper)

    async def execute(
        self,
        descriptor: RequestDescriptor,
        mapper: ResultMapper[T] | None = None,
    ) -> T | Any:
        """Perform the logical call described by ``descriptor``."""
        auto_refresh = descriptor.auto_refresh_token
        if auto_refresh is None:
            auto_refresh = self.refresh_token_function is not None

        url = join_url(self.endpoint, descriptor.path_with_query)
        content = (
            json.dumps(descriptor.json).encode("utf-8")
            if descriptor.has_body
            else None
        )

        async def send(attempt: int) -> httpx.Response:
            headers = await self._headers.prepare()
            if content is not None:
                headers["content-type"] = "application/json"
            return await self._transport.send(
                descriptor.method,
                url,
                headers,
                content=content,
                attempt=attempt,
            )

        policy = StaleTokenRetryPolicy(
            self.refresh_token_function,
            auto_refresh_token=auto_refresh,
        )
        with trace_operation(
            "skygear.request",
            attributes={"http.method": descriptor.method, "skygear.path": descriptor.path},
        ) as span:
            response = await policy.run(send)
            span.set_attribute("skygear.exchanges", policy.exchanges)

            body = parse_json_body(response)
            return decode_result(body, mapper, status_code=response.status_code)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def fetch_json(self, url: str) -> Any:
        """GET an absolute URL and parse its JSON body, without an envelope."""
        response = await self._transport.send("GET", url, {})
        return parse_json_body(response)
