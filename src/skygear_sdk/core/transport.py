"""HTTP transport adapter for the Skygear SDK.

Wraps the injected HTTP implementation and issues exactly one physical
exchange per call. Retrying is the caller's concern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from ..telemetry import get_logger, trace_operation
from .errors import ErrorFactory

if TYPE_CHECKING:
    from ..config import ClientConfig
    from ..types import HTTPTransport


def create_async_http_client(config: ClientConfig) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        config: SDK configuration.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=config.connect_timeout,
            read=config.timeout,
            write=config.timeout,
            pool=config.timeout,
        ),
        headers={"Accept": "application/json"},
        follow_redirects=False,
    )


class TransportAdapter:
    """Sends single requests through an injected transport."""

    def __init__(self, transport: HTTPTransport | None) -> None:
        """Initialize transport adapter.

        Args:
            transport: HTTP implementation; required before the first send.
        """
        self._transport = transport
        self._logger = get_logger()

    @property
    def transport(self) -> HTTPTransport:
        if self._transport is None:
            raise ErrorFactory.missing_capability("transport")
        return self._transport

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        *,
        content: bytes | None = None,
        attempt: int = 0,
    ) -> httpx.Response:
        """Build and send one request.

        Args:
            method: HTTP method.
            url: Absolute request URL.
            headers: Headers for this exchange.
            content: Optional encoded body.
            attempt: Exchange number within the logical call.

        Returns:
            The raw HTTP response, whatever its status.

        Raises:
            InvalidConfigError: If no transport is configured.
            NetworkError: On transport failure.
        """
        transport = self.transport
        request = transport.build_request(
            method, url, headers=headers, content=content
        )

        with trace_operation(
            "http_request",
            attributes={"http.method": method, "http.url": url, "attempt": attempt},
        ) as span:
            try:
                response = await transport.send(request)
            except httpx.HTTPError as e:
                self._logger.warning(
                    "Request failed",
                    method=method,
                    url=url,
                    attempt=attempt,
                    error=str(e),
                )
                raise ErrorFactory.from_exception(e) from e

            span.set_attribute("http.status_code", response.status_code)
            self._logger.debug(
                "Request completed",
                method=method,
                url=url,
                attempt=attempt,
                status_code=response.status_code,
            )
            return response
