"""Resilient HTTP client.

``Client`` turns a ``RequestMetadata`` and an optional body into a single
attempt (transport send, status classification, body decoding) and hands that
attempt to ``execute_with_retry``, which applies the retry strategy, retry
predicate and rate-limit handling.

Example usage:
    async with Client(
        "https://api.example.com",
        retry_strategy=ExponentialBackoff(initial_delay=0.1, max_retries=3),
    ) as client:
        envelope = await client.get("/users/1", response_type=User)
        print(envelope.data.name, envelope.attempts)
"""

import logging
import random
from typing import Any, Mapping, Optional

import httpx

from callguard.config.settings import ClientConfig
from callguard.core.codec import JSON_CONTENT_TYPE, decode_body, encode_body, response_adapter
from callguard.core.errors import ConfigurationError, HttpError, InvalidUrlError
from callguard.core.metadata import QueryParams, RequestMetadata, validate_header
from callguard.core.observability import CallObserver
from callguard.core.resilience import (
    NoRetry,
    RateLimitConfig,
    RetryPredicate,
    RetryStrategy,
    SleepFunc,
    execute_with_retry,
    parse_rate_limit_headers,
)
from callguard.core.response import ResponseEnvelope
from callguard.core.transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _parse_base_url(base_url: str) -> httpx.URL:
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidUrlError(str(base_url), str(e)) from e
    if url.scheme not in ("http", "https"):
        raise InvalidUrlError(base_url, "scheme must be http or https")
    if not url.host:
        raise InvalidUrlError(base_url, "missing host")
    return url


def build_url(base_url: httpx.URL, path: str, query_params: QueryParams = ()) -> httpx.URL:
    """Join ``path`` onto ``base_url`` and append query parameters.

    The path is appended to the base URL's path, so a base of
    ``https://host/api/v1`` and path ``/users`` give ``https://host/api/v1/users``.
    Query parameters already on the base URL are kept; repeated keys are kept.

    Raises:
        InvalidUrlError: ``path`` is an absolute URL or cannot be encoded.
    """
    if "://" in path:
        raise InvalidUrlError(path, "path must be relative to the base URL")
    if "?" in path or "#" in path:
        raise InvalidUrlError(path, "pass query parameters through the request metadata")

    base_path = base_url.path.rstrip("/")
    joined = f"{base_path}/{path.lstrip('/')}" if path else base_url.path or "/"
    params = list(base_url.params.multi_items())
    params.extend(query_params.items() if isinstance(query_params, Mapping) else query_params)
    try:
        return base_url.copy_with(path=joined, params=httpx.QueryParams(params) if params else None)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InvalidUrlError(path, str(e)) from e


class Client:
    """HTTP client that retries failed calls according to its policies.

    Attributes:
        base_url: Absolute http(s) URL every request path is joined onto.
        timeout: Per-attempt timeout in seconds (``None`` disables it).
        retry_strategy: Retry strategy (default: ``NoRetry``).
        retry_predicate: Retry predicate (default: retry network errors,
            timeouts and 5xx).
        rate_limit: Rate-limit header handling.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        default_headers: Optional[Mapping[str, str]] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        retry_predicate: Optional[RetryPredicate] = None,
        rate_limit: Optional[RateLimitConfig] = None,
        observer: Optional[CallObserver] = None,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
        sleep_func: Optional[SleepFunc] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Absolute http or https URL.
            timeout: Per-attempt timeout in seconds.
            default_headers: Headers sent with every request; request
                headers with the same name take precedence.
            retry_strategy: Retry strategy (default: ``NoRetry``).
            retry_predicate: Retry predicate (default: ``RetryOnRetryable``).
            rate_limit: Rate-limit configuration (default: enabled, 300s cap).
            observer: Receives call events (default: logs them).
            transport: Custom transport. Mutually exclusive with ``http_client``.
            http_client: An ``httpx.AsyncClient`` to send through. It is not
                closed by ``aclose``.
            rng: Random instance for deterministic jitter in tests.
            sleep_func: Sleep function for time control in tests.

        Raises:
            InvalidUrlError: ``base_url`` is not an absolute http(s) URL.
            ConfigurationError: Invalid headers, timeout or collaborators.
        """
        if transport is not None and http_client is not None:
            raise ConfigurationError("Pass either transport or http_client, not both")
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0, got {timeout}")

        self.base_url = _parse_base_url(base_url)
        self.timeout = timeout
        self.default_headers = httpx.Headers()
        for name, value in (default_headers or {}).items():
            validate_header(name, value)
            self.default_headers[name] = value

        self.retry_strategy = retry_strategy or NoRetry()
        self.retry_predicate = retry_predicate
        self.rate_limit = rate_limit or RateLimitConfig()
        self._observer = observer
        self._transport: Transport = transport or HttpxTransport(http_client)
        self._rng = rng
        self._sleep_func = sleep_func

    @classmethod
    def from_config(cls, config: ClientConfig, **overrides: Any) -> "Client":
        """Build a client from a ``ClientConfig``.

        Keyword overrides are passed to the constructor as-is.
        """
        if not config.base_url and "base_url" not in overrides:
            raise ConfigurationError("base_url is required")
        kwargs: dict[str, Any] = {
            "base_url": config.base_url,
            "timeout": config.timeout,
            "default_headers": config.default_headers,
            "retry_strategy": config.build_strategy(),
            "retry_predicate": config.build_predicate(),
            "rate_limit": config.build_rate_limit_config(),
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    async def call(
        self,
        metadata: RequestMetadata,
        body: Any = None,
        response_type: Any = Any,
    ) -> ResponseEnvelope[Any]:
        """Execute a request with retries.

        Args:
            metadata: Method, path, headers and query parameters.
            body: Optional request body, sent as JSON.
            response_type: Type the response body is parsed into (any type
                pydantic can validate; ``str``/``bytes`` skip parsing).

        Returns:
            The successful ``ResponseEnvelope``.

        Raises:
            InvalidUrlError: The request URL could not be built.
            ConfigurationError: ``response_type`` cannot be validated by pydantic.
            SerializationError: ``body`` could not be encoded.
            HttpError: Non-2xx response that was not retried.
            DeserializationError: The body did not parse as ``response_type``.
            MaxRetriesExceededError: Retries ran out.
        """
        url = build_url(self.base_url, metadata.path, metadata.query_params)
        adapter = response_adapter(response_type)

        headers = self.default_headers.copy()
        for name, value in metadata.headers.items():
            headers[name] = value

        content: Optional[bytes] = None
        if body is not None:
            content = encode_body(body)
            if "content-type" not in headers:
                headers["Content-Type"] = JSON_CONTENT_TYPE

        operation = f"{metadata.method} {metadata.path or '/'}"

        async def attempt(attempt_number: int) -> ResponseEnvelope[Any]:
            logger.debug("%s: sending attempt %d to %s", operation, attempt_number, url)
            raw = await self._transport.send(
                metadata.method,
                url,
                headers,
                content=content,
                timeout=self.timeout,
            )
            if not raw.is_success:
                raise HttpError(
                    status=raw.status,
                    raw_response=raw.text,
                    headers=raw.headers,
                    rate_limit_info=parse_rate_limit_headers(raw.headers),
                )
            return ResponseEnvelope(
                data=decode_body(raw, response_type, adapter),
                raw_body=raw.text,
                status=raw.status,
                headers=raw.headers,
                latency=0.0,
                attempts=attempt_number,
            )

        return await execute_with_retry(
            attempt,
            strategy=self.retry_strategy,
            predicate=self.retry_predicate,
            rate_limit=self.rate_limit,
            observer=self._observer,
            rng=self._rng,
            sleep_func=self._sleep_func,
            operation=operation,
        )

    async def get(
        self,
        path: str,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, str]] = None,
        response_type: Any = Any,
    ) -> ResponseEnvelope[Any]:
        """GET ``path``."""
        return await self.call(_metadata("GET", path, params, headers), response_type=response_type)

    async def post(
        self,
        path: str,
        body: Any = None,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, str]] = None,
        response_type: Any = Any,
    ) -> ResponseEnvelope[Any]:
        """POST ``body`` to ``path``."""
        return await self.call(_metadata("POST", path, params, headers), body, response_type)

    async def put(
        self,
        path: str,
        body: Any = None,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, str]] = None,
        response_type: Any = Any,
    ) -> ResponseEnvelope[Any]:
        return await self.call(_metadata("PUT", path, params, headers), body, response_type)

    async def patch(
        self,
        path: str,
        body: Any = None,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, str]] = None,
        response_type: Any = Any,
    ) -> ResponseEnvelope[Any]:
        return await self.call(_metadata("PATCH", path, params, headers), body, response_type)

    async def delete(
        self,
        path: str,
        *,
        params: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, str]] = None,
        response_type: Any = Any,
    ) -> ResponseEnvelope[Any]:
        return await self.call(_metadata("DELETE", path, params, headers), response_type=response_type)

    async def aclose(self) -> None:
        """Close the transport (an ``http_client`` passed in stays open)."""
        await self._transport.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _metadata(
    method: str,
    path: str,
    params: Optional[QueryParams],
    headers: Optional[Mapping[str, str]],
) -> RequestMetadata:
    metadata = RequestMetadata(method, path)
    if headers:
        metadata.with_headers(headers)
    if params:
        metadata.with_query_params(params)
    return metadata
