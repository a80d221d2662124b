"""Response envelope that keeps parsed data next to the raw exchange.

``ResponseEnvelope`` bundles the deserialized data with the raw body, status,
headers, latency and attempt count of the call that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Generic, Optional, TypeVar

import httpx

from callguard.core.resilience.models import RateLimitInfo
from callguard.core.resilience.rate_limit import parse_rate_limit_headers

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class ResponseEnvelope(Generic[T]):
    """A successful response.

    Attributes:
        data: The deserialized response data.
        raw_body: The response body as text (UTF-8, undecodable bytes replaced).
        status: HTTP status code.
        headers: Response headers.
        latency: Seconds from the start of the first attempt to success.
        attempts: Attempts made, 1 if the first one succeeded.
    """

    data: T
    raw_body: str
    status: int
    headers: httpx.Headers
    latency: float
    attempts: int = 1

    @property
    def was_retried(self) -> bool:
        return self.attempts > 1

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name)

    @property
    def rate_limit_info(self) -> RateLimitInfo:
        """Rate-limit headers of this response."""
        return parse_rate_limit_headers(self.headers)

    def map(self, fn: Callable[[T], U]) -> "ResponseEnvelope[U]":
        """Transform ``data`` while keeping the metadata."""
        return ResponseEnvelope(
            data=fn(self.data),
            raw_body=self.raw_body,
            status=self.status,
            headers=self.headers,
            latency=self.latency,
            attempts=self.attempts,
        )

    def with_call_totals(self, latency: float, attempts: int) -> "ResponseEnvelope[T]":
        return replace(self, latency=latency, attempts=attempts)
