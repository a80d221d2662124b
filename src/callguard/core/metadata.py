"""Per-request metadata: method, path, headers and query parameters."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Tuple, Union

import httpx

from callguard.core.errors import ConfigurationError

# RFC 7230 token characters
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_VALID_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})

QueryParams = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def validate_header(name: str, value: str) -> None:
    """Raise ``ConfigurationError`` for an invalid header name or value."""
    if not _HEADER_NAME.match(name or ""):
        raise ConfigurationError(f"Invalid header name: {name!r}")
    if "\r" in value or "\n" in value or "\x00" in value:
        raise ConfigurationError(f"Invalid header value for {name!r}")


@dataclass
class RequestMetadata:
    """Everything needed to address a single HTTP request.

    Headers are case-insensitive and keep insertion order; setting a header
    twice keeps the last value. Query parameters may repeat and keep
    insertion order.

    Example:
        >>> meta = (
        ...     RequestMetadata("GET", "/search")
        ...     .with_header("Accept", "application/json")
        ...     .with_query_param("tag", "a")
        ...     .with_query_param("tag", "b")
        ... )
    """

    method: str = "GET"
    path: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    query_params: List[Tuple[str, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if self.method not in _VALID_METHODS:
            raise ConfigurationError(f"Unsupported HTTP method: {self.method}")
        if not isinstance(self.headers, httpx.Headers):
            headers = self.headers
            self.headers = httpx.Headers()
            self.with_headers(headers)

    def with_header(self, name: str, value: str) -> "RequestMetadata":
        """Set a header, replacing any previous value for the same name."""
        validate_header(name, value)
        self.headers[name] = value
        return self

    def with_headers(self, headers: Mapping[str, str]) -> "RequestMetadata":
        for name, value in headers.items():
            self.with_header(name, value)
        return self

    def with_query_param(self, key: str, value: str) -> "RequestMetadata":
        """Append a query parameter; repeated keys are kept."""
        self.query_params.append((str(key), str(value)))
        return self

    def with_query_params(self, params: QueryParams) -> "RequestMetadata":
        items = params.items() if isinstance(params, Mapping) else params
        for key, value in items:
            self.with_query_param(key, value)
        return self
