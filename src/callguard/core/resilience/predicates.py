"""Retry predicates: should this error be retried?

A predicate is a veto, not an enabler: the execution loop retries only when
the predicate says yes *and* the strategy still proposes a delay.

Predicates are stateless and side-effect-free, so a single instance can be
shared by any number of concurrent calls.

Example:
    >>> predicate = OrPredicate([RetryOn5xx(), RetryOnTimeout()])
    >>> predicate.should_retry(RequestTimeoutError(), attempt=1)
    True
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterable

from callguard.core.errors import (
    CallError,
    HttpError,
    NetworkError,
    RequestTimeoutError,
)


class RetryPredicate(ABC):
    """Decides whether a failed attempt should be retried."""

    @abstractmethod
    def should_retry(self, error: CallError, attempt: int) -> bool:
        """Return True to allow a retry after ``attempt`` failed with ``error``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RetryOnRetryable(RetryPredicate):
    """Retry network errors, timeouts and 5xx responses.

    4xx responses, including 429, are not retried; rate-limit waits are the
    resolver's concern.
    """

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return error.is_retryable


class RetryOn5xx(RetryPredicate):
    """Retry only 5xx responses."""

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return isinstance(error, HttpError) and error.is_server_error


class RetryOnTimeout(RetryPredicate):
    """Retry only timeouts."""

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return isinstance(error, RequestTimeoutError)


class RetryOnConnectionError(RetryPredicate):
    """Retry only network/connection errors."""

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return isinstance(error, NetworkError)


class RetryOnStatus(RetryPredicate):
    """Retry HTTP errors whose status is in ``statuses``.

    Use this to opt in to retrying 429 responses, which the default predicate
    leaves alone.
    """

    def __init__(self, statuses: Iterable[int]):
        self.statuses = frozenset(int(s) for s in statuses)

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return isinstance(error, HttpError) and error.status in self.statuses

    def __repr__(self) -> str:
        return f"RetryOnStatus({sorted(self.statuses)})"


class RetryIf(RetryPredicate):
    """Wrap a plain ``(error, attempt) -> bool`` callable."""

    def __init__(self, fn: Callable[[CallError, int], bool]):
        self.fn = fn

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return bool(self.fn(error, attempt))

    def __repr__(self) -> str:
        return f"RetryIf({getattr(self.fn, '__name__', self.fn)!r})"


class OrPredicate(RetryPredicate):
    """True if any predicate is true; stops at the first true."""

    def __init__(self, predicates: Iterable[RetryPredicate]):
        self.predicates = tuple(predicates)

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return any(p.should_retry(error, attempt) for p in self.predicates)

    def __repr__(self) -> str:
        return f"OrPredicate({list(self.predicates)!r})"


class AndPredicate(RetryPredicate):
    """True if all predicates are true; stops at the first false."""

    def __init__(self, predicates: Iterable[RetryPredicate]):
        self.predicates = tuple(predicates)

    def should_retry(self, error: CallError, attempt: int) -> bool:
        return all(p.should_retry(error, attempt) for p in self.predicates)

    def __repr__(self) -> str:
        return f"AndPredicate({list(self.predicates)!r})"


DEFAULT_PREDICATE: RetryPredicate = RetryOnRetryable()
