"""Tests for ResponseEnvelope."""

import httpx

from callguard.core.response import ResponseEnvelope


def make_envelope(**overrides) -> ResponseEnvelope:
    fields = {
        "data": {"id": 1},
        "raw_body": '{"id": 1}',
        "status": 200,
        "headers": httpx.Headers({"Content-Type": "application/json", "X-RateLimit-Remaining": "9"}),
        "latency": 0.05,
    }
    fields.update(overrides)
    return ResponseEnvelope(**fields)


class TestResponseEnvelope:
    def test_defaults_to_single_attempt(self):
        envelope = make_envelope()
        assert envelope.attempts == 1
        assert envelope.was_retried is False

    def test_header_case_insensitive(self):
        envelope = make_envelope()
        assert envelope.header("content-type") == "application/json"
        assert envelope.header("missing") is None

    def test_rate_limit_info(self):
        assert make_envelope().rate_limit_info.remaining == 9

    def test_map_keeps_metadata(self):
        envelope = make_envelope(attempts=3)
        mapped = envelope.map(lambda data: data["id"])
        assert mapped.data == 1
        assert mapped.raw_body == envelope.raw_body
        assert mapped.attempts == 3
        assert mapped.was_retried is True

    def test_with_call_totals(self):
        envelope = make_envelope().with_call_totals(latency=1.5, attempts=2)
        assert envelope.latency == 1.5
        assert envelope.attempts == 2
