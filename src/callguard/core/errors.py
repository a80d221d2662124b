"""Error hierarchy for outbound HTTP calls.

Every failure surfaced by a call is a ``CallError`` subclass. Errors that
originate from a completed HTTP exchange (``HttpError``,
``DeserializationError``) carry the raw response body, status and headers so
the diagnostic payload survives even when the body could not be parsed.

Errors raised before any request is sent (``ConfigurationError``,
``SerializationError``, ``InvalidUrlError``) are never retried.

Usage:
    from callguard.core.errors import CallError, HttpError

    try:
        envelope = await client.get("/users/1")
    except HttpError as e:
        print(e.status, e.raw_response)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

if TYPE_CHECKING:
    import httpx

    from callguard.core.resilience.models import RateLimitInfo


class ErrorKind(str, Enum):
    """Classification of call failures."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    DESERIALIZATION = "deserialization"
    HTTP = "http"
    CONFIGURATION = "configuration"
    SERIALIZATION = "serialization"
    INVALID_URL = "invalid_url"
    MAX_RETRIES = "max_retries"


class CallError(Exception):
    """Base class for all call failures.

    Attributes:
        kind: The ``ErrorKind`` of this error.
    """

    kind: ClassVar[ErrorKind]

    @property
    def status(self) -> Optional[int]:
        """HTTP status code, if a response was received."""
        return None

    @property
    def raw_response(self) -> Optional[str]:
        """Raw response body, if a response was received."""
        return None

    @property
    def headers(self) -> Optional["httpx.Headers"]:
        """Response headers, if a response was received."""
        return None

    @property
    def is_retryable(self) -> bool:
        """Whether this error is potentially transient.

        Network errors, timeouts and 5xx responses are retryable; 4xx
        responses and deserialization failures are not.
        """
        return False

    @property
    def rate_limit_info(self) -> Optional["RateLimitInfo"]:
        """Rate-limit information parsed from the response headers."""
        return None

    def rate_limit_delay(self, max_wait: float = 300.0) -> Optional[float]:
        """Recommended wait before calling again, capped at ``max_wait``.

        Returns ``None`` when the response carried no usable rate-limit
        headers (or when no response was received).
        """
        info = self.rate_limit_info
        if info is None:
            return None
        return info.delay(max_wait)


class NetworkError(CallError):
    """Transport-level failure; no response was received.

    Attributes:
        cause: The underlying transport exception, if any.
    """

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Network error: {message}")
        self.cause = cause

    @property
    def is_retryable(self) -> bool:
        return True


class RequestTimeoutError(CallError):
    """No response within the per-attempt deadline.

    Attributes:
        timeout_seconds: The timeout that was exceeded, if known.
    """

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[float] = None,
    ):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    @property
    def is_retryable(self) -> bool:
        return True


class HttpError(CallError):
    """The server answered with a non-2xx status.

    Attributes:
        status: HTTP status code.
        raw_response: The raw response body.
        headers: The response headers.
    """

    kind = ErrorKind.HTTP

    def __init__(
        self,
        status: int,
        raw_response: str,
        headers: "httpx.Headers",
        rate_limit_info: Optional["RateLimitInfo"] = None,
    ):
        super().__init__(f"HTTP error {status}: {raw_response}")
        self._status = status
        self._raw_response = raw_response
        self._headers = headers
        self._rate_limit_info = rate_limit_info

    @property
    def status(self) -> int:
        return self._status

    @property
    def raw_response(self) -> str:
        return self._raw_response

    @property
    def headers(self) -> "httpx.Headers":
        return self._headers

    @property
    def is_retryable(self) -> bool:
        return 500 <= self._status <= 599

    @property
    def is_server_error(self) -> bool:
        return 500 <= self._status <= 599

    @property
    def rate_limit_info(self) -> Optional["RateLimitInfo"]:
        return self._rate_limit_info


class DeserializationError(CallError):
    """The response body could not be parsed into the requested type.

    The raw body is kept byte-for-byte (decoded as UTF-8) for diagnosis.

    Attributes:
        raw_response: The raw response body.
        detail: The parser's error message.
        status: HTTP status code of the response.
    """

    kind = ErrorKind.DESERIALIZATION

    def __init__(
        self,
        raw_response: str,
        detail: str,
        status: int,
        headers: Optional["httpx.Headers"] = None,
    ):
        super().__init__(f"Failed to deserialize response (status {status}): {detail}")
        self._raw_response = raw_response
        self.detail = detail
        self._status = status
        self._headers = headers

    @property
    def status(self) -> int:
        return self._status

    @property
    def raw_response(self) -> str:
        return self._raw_response

    @property
    def headers(self) -> Optional["httpx.Headers"]:
        return self._headers


class ConfigurationError(CallError):
    """Invalid client, policy or request configuration."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}")


class SerializationError(CallError):
    """The outbound request body could not be encoded.

    Attributes:
        detail: The encoder's error message.
    """

    kind = ErrorKind.SERIALIZATION

    def __init__(self, detail: str):
        super().__init__(f"Failed to serialize request: {detail}")
        self.detail = detail


class InvalidUrlError(CallError):
    """Malformed base URL or request path.

    Attributes:
        url: The offending URL or path.
    """

    kind = ErrorKind.INVALID_URL

    def __init__(self, url: str, reason: str):
        super().__init__(f"Invalid URL {url!r}: {reason}")
        self.url = url


class MaxRetriesExceededError(CallError):
    """Retries exhausted.

    Attributes:
        attempts: Total attempts made, including the first one.
        last_error: The most recent underlying error.
    """

    kind = ErrorKind.MAX_RETRIES

    def __init__(self, attempts: int, last_error: CallError):
        super().__init__(f"Max retries exceeded after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error

    @property
    def status(self) -> Optional[int]:
        return self.last_error.status

    @property
    def raw_response(self) -> Optional[str]:
        return self.last_error.raw_response

    @property
    def headers(self) -> Optional["httpx.Headers"]:
        return self.last_error.headers

    @property
    def rate_limit_info(self) -> Optional["RateLimitInfo"]:
        return self.last_error.rate_limit_info


def error_severity(error: CallError) -> int:
    """Return the ``logging`` level an error should be reported at.

    Transient remote trouble (5xx, timeouts, network failures) is not
    actionable by the caller and is reported at WARNING. Client errors (4xx)
    and deserialization failures point at a contract bug and are reported at
    ERROR, as are configuration problems.
    """
    if isinstance(error, MaxRetriesExceededError):
        return error_severity(error.last_error)
    if isinstance(error, (NetworkError, RequestTimeoutError)):
        return logging.WARNING
    if isinstance(error, HttpError) and error.is_server_error:
        return logging.WARNING
    return logging.ERROR
