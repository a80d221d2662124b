"""Unit tests for retry predicates."""

import httpx
import pytest

from callguard.core.errors import (
    DeserializationError,
    HttpError,
    NetworkError,
    RequestTimeoutError,
)
from callguard.core.resilience import (
    DEFAULT_PREDICATE,
    AndPredicate,
    OrPredicate,
    RetryIf,
    RetryOn5xx,
    RetryOnConnectionError,
    RetryOnRetryable,
    RetryOnStatus,
    RetryOnTimeout,
    RetryPredicate,
)


def http_error(status: int) -> HttpError:
    return HttpError(status=status, raw_response="", headers=httpx.Headers())


class RecordingPredicate(RetryPredicate):
    """Returns a fixed answer and counts calls."""

    def __init__(self, answer: bool):
        self.answer = answer
        self.calls = 0

    def should_retry(self, error, attempt):
        self.calls += 1
        return self.answer


class TestRetryOnRetryable:
    """Tests for the default predicate."""

    @pytest.mark.parametrize(
        "error",
        [NetworkError("connection reset"), RequestTimeoutError(), http_error(500), http_error(503)],
    )
    def test_retryable(self, error):
        assert RetryOnRetryable().should_retry(error, 1) is True

    @pytest.mark.parametrize("status", [400, 401, 404, 429])
    def test_client_errors_not_retried(self, status):
        """4xx, including 429, is not retried by default."""
        assert RetryOnRetryable().should_retry(http_error(status), 1) is False

    def test_deserialization_not_retried(self):
        error = DeserializationError(raw_response="not json", detail="bad", status=200)
        assert RetryOnRetryable().should_retry(error, 1) is False

    def test_default_predicate_is_retry_on_retryable(self):
        assert isinstance(DEFAULT_PREDICATE, RetryOnRetryable)


class TestSingleConditionPredicates:
    def test_retry_on_5xx(self):
        assert RetryOn5xx().should_retry(http_error(502), 1) is True
        assert RetryOn5xx().should_retry(http_error(404), 1) is False
        assert RetryOn5xx().should_retry(RequestTimeoutError(), 1) is False

    def test_retry_on_timeout(self):
        assert RetryOnTimeout().should_retry(RequestTimeoutError(), 1) is True
        assert RetryOnTimeout().should_retry(NetworkError("x"), 1) is False

    def test_retry_on_connection_error(self):
        assert RetryOnConnectionError().should_retry(NetworkError("x"), 1) is True
        assert RetryOnConnectionError().should_retry(http_error(503), 1) is False

    def test_retry_on_status(self):
        predicate = RetryOnStatus([429])
        assert predicate.should_retry(http_error(429), 1) is True
        assert predicate.should_retry(http_error(503), 1) is False
        assert predicate.should_retry(NetworkError("x"), 1) is False

    def test_retry_if_receives_attempt(self):
        predicate = RetryIf(lambda error, attempt: attempt < 3)
        assert predicate.should_retry(http_error(500), 2) is True
        assert predicate.should_retry(http_error(500), 3) is False


class TestComposition:
    """Tests for OrPredicate and AndPredicate."""

    def test_or_5xx_timeout(self):
        predicate = OrPredicate([RetryOn5xx(), RetryOnTimeout()])
        assert predicate.should_retry(http_error(503), 1) is True
        assert predicate.should_retry(RequestTimeoutError(), 1) is True
        assert predicate.should_retry(http_error(404), 1) is False

    def test_or_short_circuits(self):
        first, second = RecordingPredicate(True), RecordingPredicate(True)
        assert OrPredicate([first, second]).should_retry(http_error(500), 1) is True
        assert second.calls == 0

    def test_and_short_circuits(self):
        first, second = RecordingPredicate(False), RecordingPredicate(True)
        assert AndPredicate([first, second]).should_retry(http_error(500), 1) is False
        assert second.calls == 0

    def test_and_requires_all(self):
        predicate = AndPredicate([RetryOnRetryable(), RetryIf(lambda e, a: a <= 2)])
        assert predicate.should_retry(http_error(500), 2) is True
        assert predicate.should_retry(http_error(500), 3) is False
        assert predicate.should_retry(http_error(404), 1) is False

    def test_empty_combinators(self):
        assert OrPredicate([]).should_retry(http_error(500), 1) is False
        assert AndPredicate([]).should_retry(http_error(404), 1) is True

    def test_opt_in_429(self):
        predicate = OrPredicate([RetryOnRetryable(), RetryOnStatus({429})])
        assert predicate.should_retry(http_error(429), 1) is True
        assert predicate.should_retry(http_error(400), 1) is False
