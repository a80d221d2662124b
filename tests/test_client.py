"""Tests for Client, driven through httpx.MockTransport.

Tests cover:
- URL building (base path join, query parameters)
- Header merging and JSON bodies
- Typed decoding and raw body preservation
- Retry, rate-limit and exhaustion behaviour end to end
- Construction validation and from_config
"""

import json
import random
from typing import Any

import httpx
import pytest
from pydantic import BaseModel

from callguard.client import Client, build_url
from callguard.config import ClientConfig
from callguard.core.errors import (
    ConfigurationError,
    DeserializationError,
    HttpError,
    InvalidUrlError,
    MaxRetriesExceededError,
    NetworkError,
    SerializationError,
)
from callguard.core.metadata import RequestMetadata
from callguard.core.observability import CallEventType, CollectingObserver
from callguard.core.resilience import (
    ExponentialBackoff,
    LinearBackoff,
    OrPredicate,
    RetryOnRetryable,
    RetryOnStatus,
)


class User(BaseModel):
    id: int
    name: str


class Script:
    """MockTransport handler replaying responses and recording requests.

    The last response repeats once the script runs out.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def make_client(script, fake_sleep, **kwargs) -> Client:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(script))
    kwargs.setdefault("observer", CollectingObserver())
    return Client(
        "https://api.example.com/v1",
        http_client=http_client,
        sleep_func=fake_sleep,
        rng=random.Random(42),
        **kwargs,
    )


class TestBuildUrl:
    def test_joins_base_path(self):
        url = build_url(httpx.URL("https://api.example.com/v1/"), "/users/1")
        assert str(url) == "https://api.example.com/v1/users/1"

    def test_root_base(self):
        url = build_url(httpx.URL("https://api.example.com"), "users")
        assert str(url) == "https://api.example.com/users"

    def test_empty_path(self):
        url = build_url(httpx.URL("https://api.example.com/v1"), "")
        assert url.path == "/v1"

    def test_query_params_appended_and_repeated(self):
        url = build_url(
            httpx.URL("https://api.example.com/v1?key=abc"),
            "/search",
            [("tag", "a"), ("tag", "b")],
        )
        assert url.params.get_list("tag") == ["a", "b"]
        assert url.params["key"] == "abc"

    @pytest.mark.parametrize("path", ["https://evil.example.com/x", "/users?id=1"])
    def test_rejected_paths(self, path):
        with pytest.raises(InvalidUrlError):
            build_url(httpx.URL("https://api.example.com"), path)


class TestClientConstruction:
    @pytest.mark.parametrize("base_url", ["ftp://example.com", "not a url", "/relative"])
    def test_invalid_base_url(self, base_url):
        with pytest.raises(InvalidUrlError):
            Client(base_url)

    def test_invalid_default_header(self):
        with pytest.raises(ConfigurationError):
            Client("https://api.example.com", default_headers={"bad header": "x"})

    def test_transport_and_http_client_exclusive(self):
        with pytest.raises(ConfigurationError):
            Client(
                "https://api.example.com",
                transport=object(),
                http_client=httpx.AsyncClient(),
            )

    def test_from_config(self):
        config = ClientConfig(base_url="https://api.example.com", timeout=5.0)
        config.retry.strategy = "linear"
        config.retry.retry_on_status = [429]
        client = Client.from_config(config)
        assert client.timeout == 5.0
        assert isinstance(client.retry_strategy, LinearBackoff)
        assert isinstance(client.retry_predicate, OrPredicate)

    def test_from_config_requires_base_url(self):
        with pytest.raises(ConfigurationError):
            Client.from_config(ClientConfig())


class TestClientRequests:
    """Tests for request construction."""

    @pytest.mark.asyncio
    async def test_get_typed(self, fake_sleep):
        script = Script(httpx.Response(200, json={"id": 1, "name": "Ada"}))
        async with make_client(script, fake_sleep) as client:
            envelope = await client.get("/users/1", response_type=User)
        assert envelope.data == User(id=1, name="Ada")
        assert envelope.status == 200
        assert envelope.attempts == 1
        assert json.loads(envelope.raw_body) == {"id": 1, "name": "Ada"}
        assert str(script.requests[0].url) == "https://api.example.com/v1/users/1"

    @pytest.mark.asyncio
    async def test_headers_merged(self, fake_sleep):
        script = Script(httpx.Response(204))
        client = make_client(script, fake_sleep, default_headers={"Authorization": "Bearer t", "Accept": "text/plain"})
        metadata = RequestMetadata("DELETE", "/users/1").with_header("accept", "application/json")
        envelope = await client.call(metadata)
        request = script.requests[0]
        assert request.method == "DELETE"
        assert request.headers["authorization"] == "Bearer t"
        assert request.headers.get_list("accept") == ["application/json"]
        assert envelope.data is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_post_json_body(self, fake_sleep):
        script = Script(httpx.Response(201, json={"id": 2, "name": "Grace"}))
        client = make_client(script, fake_sleep)
        envelope = await client.post("/users", {"name": "Grace"}, response_type=User)
        request = script.requests[0]
        assert json.loads(request.content) == {"name": "Grace"}
        assert request.headers["content-type"] == "application/json"
        assert envelope.data.id == 2

    @pytest.mark.asyncio
    async def test_query_params(self, fake_sleep):
        script = Script(httpx.Response(200, json=[]))
        client = make_client(script, fake_sleep)
        await client.get("/search", params=[("tag", "a"), ("tag", "b"), ("q", "rust lang")])
        url = script.requests[0].url
        assert url.params.get_list("tag") == ["a", "b"]
        assert url.params["q"] == "rust lang"

    @pytest.mark.asyncio
    async def test_timeout_applied_per_attempt(self, fake_sleep):
        script = Script(httpx.Response(200))
        client = make_client(script, fake_sleep, timeout=2.5)
        await client.get("/ping")
        assert script.requests[0].extensions["timeout"]["read"] == 2.5

    @pytest.mark.asyncio
    async def test_timeout_none_disables_timeouts(self, fake_sleep):
        script = Script(httpx.Response(200))
        client = make_client(script, fake_sleep, timeout=None)
        await client.get("/ping")
        assert set(script.requests[0].extensions["timeout"].values()) == {None}

    @pytest.mark.asyncio
    async def test_unsupported_response_type_sends_nothing(self, fake_sleep):
        class Plain:
            pass

        script = Script(httpx.Response(200, json={}))
        client = make_client(script, fake_sleep)
        with pytest.raises(ConfigurationError):
            await client.get("/x", response_type=Plain)
        assert script.requests == []

    @pytest.mark.asyncio
    async def test_unserializable_body_sends_nothing(self, fake_sleep):
        script = Script(httpx.Response(200))
        client = make_client(script, fake_sleep)
        with pytest.raises(SerializationError):
            await client.put("/items/1", {"value": object()})
        assert script.requests == []


class TestClientFailures:
    """Tests for error classification and retries."""

    @pytest.mark.asyncio
    async def test_not_json_raw_body_preserved(self, fake_sleep):
        script = Script(httpx.Response(200, content=b"not json"))
        client = make_client(script, fake_sleep, retry_strategy=ExponentialBackoff(max_retries=3))
        with pytest.raises(DeserializationError) as exc_info:
            await client.get("/users/1", response_type=User)
        assert exc_info.value.raw_response == "not json"
        assert exc_info.value.status == 200
        assert len(script.requests) == 1

    @pytest.mark.asyncio
    async def test_str_response_type_skips_parsing(self, fake_sleep):
        script = Script(httpx.Response(200, content=b"not json"))
        client = make_client(script, fake_sleep)
        envelope = await client.get("/health", response_type=str)
        assert envelope.data == "not json"

    @pytest.mark.asyncio
    async def test_404_not_retried(self, fake_sleep):
        script = Script(httpx.Response(404, text='{"error": "missing"}'))
        client = make_client(script, fake_sleep, retry_strategy=ExponentialBackoff(max_retries=3))
        with pytest.raises(HttpError) as exc_info:
            await client.get("/users/404")
        assert exc_info.value.status == 404
        assert exc_info.value.raw_response == '{"error": "missing"}'
        assert len(script.requests) == 1
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_503_then_success(self, fake_sleep):
        script = Script(httpx.Response(503, text="busy"), httpx.Response(200, json={"id": 1, "name": "Ada"}))
        observer = CollectingObserver()
        client = make_client(
            script,
            fake_sleep,
            retry_strategy=ExponentialBackoff(initial_delay=0.1, max_retries=3, jitter=False),
            observer=observer,
        )
        envelope = await client.get("/users/1", response_type=User)
        assert envelope.attempts == 2
        assert envelope.was_retried
        assert fake_sleep.delays == [0.1]
        assert observer.events[-1].operation == "GET /users/1"

    @pytest.mark.asyncio
    async def test_always_503_exhausts(self, fake_sleep):
        script = Script(httpx.Response(503, text="busy"))
        client = make_client(script, fake_sleep, retry_strategy=ExponentialBackoff(initial_delay=0.1, max_retries=3))
        with pytest.raises(MaxRetriesExceededError) as exc_info:
            await client.get("/users/1")
        assert exc_info.value.attempts == 4
        assert exc_info.value.last_error.status == 503
        assert exc_info.value.raw_response == "busy"
        assert len(script.requests) == 4

    @pytest.mark.asyncio
    async def test_429_retry_after_when_opted_in(self, fake_sleep):
        script = Script(
            httpx.Response(429, headers={"Retry-After": "5"}, text="slow down"),
            httpx.Response(200, json={"ok": True}),
        )
        observer = CollectingObserver()
        client = make_client(
            script,
            fake_sleep,
            retry_strategy=LinearBackoff(delay=2.0, max_retries=3),
            retry_predicate=OrPredicate([RetryOnRetryable(), RetryOnStatus({429})]),
            observer=observer,
        )
        envelope = await client.get("/limited", response_type=Any)
        assert envelope.data == {"ok": True}
        assert fake_sleep.delays == [5.0]
        assert observer.of_type(CallEventType.RATE_LIMITED)

    @pytest.mark.asyncio
    async def test_429_not_retried_by_default(self, fake_sleep):
        script = Script(httpx.Response(429, headers={"Retry-After": "30"}))
        client = make_client(script, fake_sleep, retry_strategy=LinearBackoff(delay=1.0, max_retries=3))
        with pytest.raises(HttpError) as exc_info:
            await client.get("/limited")
        assert exc_info.value.rate_limit_info.retry_after == 30.0
        assert exc_info.value.rate_limit_delay(max_wait=10.0) == 10.0
        assert len(script.requests) == 1

    @pytest.mark.asyncio
    async def test_network_error_retried(self, fake_sleep):
        script = Script(
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"ok": True}),
        )
        client = make_client(script, fake_sleep, retry_strategy=LinearBackoff(delay=0.5, max_retries=1))
        envelope = await client.get("/ping")
        assert envelope.attempts == 2
        assert fake_sleep.delays == [0.5]

    @pytest.mark.asyncio
    async def test_network_error_exhausted(self, fake_sleep):
        script = Script(httpx.ConnectError("connection refused"))
        client = make_client(script, fake_sleep, retry_strategy=LinearBackoff(delay=0.5, max_retries=2))
        with pytest.raises(MaxRetriesExceededError) as exc_info:
            await client.get("/ping")
        assert isinstance(exc_info.value.last_error, NetworkError)
        assert exc_info.value.raw_response is None
