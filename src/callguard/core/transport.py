"""HTTP transport collaborator.

The policy layer never touches sockets. It asks a ``Transport`` to send one
request and gets back either a ``RawResponse`` or a ``NetworkError`` /
``RequestTimeoutError``. ``HttpxTransport`` is the httpx-backed
implementation; the ``httpx.AsyncClient`` owns connection pooling and TLS.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from callguard.core.errors import NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """A completed HTTP exchange, body not yet interpreted."""

    status: int
    headers: httpx.Headers
    content: bytes

    @property
    def text(self) -> str:
        """Body decoded as UTF-8, undecodable bytes replaced."""
        return self.content.decode("utf-8", errors="replace")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status <= 299


class Transport(Protocol):
    """Sends a single HTTP request."""

    async def send(
        self,
        method: str,
        url: httpx.URL,
        headers: httpx.Headers,
        content: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> RawResponse: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """``Transport`` over an ``httpx.AsyncClient``.

    Args:
        client: An existing client to share. When omitted a client is created
            and closed by ``aclose``.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()

    async def send(
        self,
        method: str,
        url: httpx.URL,
        headers: httpx.Headers,
        content: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> RawResponse:
        # Timeout(None) disables every httpx timeout
        request_timeout = httpx.Timeout(timeout)
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                content=content,
                timeout=request_timeout,
            )
        except httpx.TimeoutException as e:
            logger.debug("%s %s timed out after %ss", method, url, timeout)
            raise RequestTimeoutError(f"Request timed out: {e}", timeout_seconds=timeout) from e
        except httpx.TransportError as e:
            logger.debug("%s %s failed: %r", method, url, e)
            raise NetworkError(str(e) or type(e).__name__, cause=e) from e

        return RawResponse(
            status=response.status_code,
            headers=response.headers,
            content=response.content,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
