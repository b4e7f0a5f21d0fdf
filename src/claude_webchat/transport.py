"""HTTP transport for the remote chat service.

A thin layer over ``httpx.AsyncClient``: one call for plain request/response
exchanges, one context manager for long-lived streaming exchanges. Status
codes >= 400 are returned, not raised, so callers can tell an auth failure
from a dead connection. Connection-level failures become TransportError.
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import httpx

from .config import get_base_url, get_timeout
from .errors import ProtocolError, TransportError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; claude-webchat)"


def build_headers(token: str, base_url: str, has_body: bool = False) -> dict[str, str]:
    """Build the browser-style headers the service expects.

    A token containing ``=`` is already a cookie header (``sessionKey=...``
    or a full copied Cookie header) and is passed through verbatim.
    """
    cookie = token if "=" in token else f"sessionKey={token}"
    headers = {
        "Cookie": cookie,
        "User-Agent": USER_AGENT,
        "Origin": base_url,
        "Referer": f"{base_url}/",
        "Accept-Language": "en-US,en;q=0.9",
        "anthropic-client-sha": "1",
        "sec-fetch-dest": "empty",
        "sec-fetch-mode": "cors",
        "sec-fetch-site": "same-origin",
    }
    if has_body:
        headers["Content-Type"] = "application/json"
    return headers


@dataclass
class HTTPResult:
    """Outcome of a non-streaming exchange."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status < 400

    def json(self) -> Any:
        """Parse the body, raising ProtocolError when it is not JSON."""
        try:
            return json.loads(self.body)
        except json.JSONDecodeError as e:
            raise ProtocolError(
                f"Failed to parse response: {self.body}", status=self.status, body=self.body
            ) from e


class StreamResponse:
    """An open streaming response."""

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status_code

    async def read_text(self) -> str:
        """Read the remainder of the body as text (used for error bodies)."""
        await self._response.aread()
        return self._response.text

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes():
            yield chunk


class TransportClient:
    """Issues requests against the service origin over TLS."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or get_base_url()).rstrip("/")
        read_timeout = timeout if timeout is not None else get_timeout()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(read_timeout, connect=10.0),
            transport=transport,
        )

    def headers_for(self, token: str, has_body: bool = False) -> dict[str, str]:
        return build_headers(token, self.base_url, has_body=has_body)

    async def request(
        self,
        path: str,
        method: str = "GET",
        headers: Optional[dict[str, str]] = None,
        body: Optional[dict] = None,
    ) -> HTTPResult:
        """Run a single request/response exchange."""
        content = json.dumps(body).encode("utf-8") if body is not None else None
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, headers=headers, content=content)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return HTTPResult(status=response.status_code, body=response.text)

    @asynccontextmanager
    async def open_stream(
        self,
        path: str,
        method: str = "POST",
        headers: Optional[dict[str, str]] = None,
        body: Optional[dict] = None,
    ) -> AsyncIterator[StreamResponse]:
        """Open a streaming exchange; the connection is released on exit."""
        content = json.dumps(body).encode("utf-8") if body is not None else None
        logger.debug("%s %s (stream)", method, path)
        try:
            async with self._client.stream(method, path, headers=headers, content=content) as response:
                yield StreamResponse(response)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
