"""Attempt execution loop.

Runs one logical call as a sequence of attempts, combining the retry
predicate, retry strategy and rate-limit resolver:

    Attempting(n) -- success --------------------------------> Done
    Attempting(n) -- error, predicate says no ---------------> Failed
    Attempting(n) -- error, resolver says stop --------------> Exhausted
    Attempting(n) -- error, resolver gives delay -- wait ----> Attempting(n + 1)

Only the wait between attempts suspends, and it is cancellable: cancelling the
calling task interrupts a pending wait immediately.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, TypeVar

from callguard.core.errors import (
    CallError,
    ConfigurationError,
    InvalidUrlError,
    MaxRetriesExceededError,
    SerializationError,
    error_severity,
)
from callguard.core.observability import (
    CallEvent,
    CallEventType,
    CallObserver,
    LoggingObserver,
)
from callguard.core.resilience.models import (
    Clock,
    RateLimitConfig,
    RateLimitInfo,
    SleepFunc,
)
from callguard.core.resilience.predicates import DEFAULT_PREDICATE, RetryPredicate
from callguard.core.resilience.rate_limit import (
    parse_rate_limit_headers,
    resolve_retry_decision,
)
from callguard.core.resilience.strategy import NoRetry, RetryStrategy

if TYPE_CHECKING:
    from callguard.core.response import ResponseEnvelope

T = TypeVar("T")

AttemptFunc = Callable[[int], Awaitable["ResponseEnvelope[T]"]]

# Raised before anything is sent; never retried
_PREFLIGHT_ERRORS = (ConfigurationError, SerializationError, InvalidUrlError)


class CallOutcome(str, Enum):
    """State of a call in the execution loop."""

    ATTEMPTING = "attempting"
    DONE = "done"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


@dataclass
class _CallState:
    """Mutable per-call state, owned by a single loop invocation."""

    attempt: int = 0
    outcome: CallOutcome = CallOutcome.ATTEMPTING
    last_error: Optional[CallError] = None
    delays: List[float] = field(default_factory=list)


def _rate_limit_info_for(error: CallError) -> Optional[RateLimitInfo]:
    """Rate-limit info for an error; ``None`` if no response was received."""
    if error.rate_limit_info is not None:
        return error.rate_limit_info
    if error.headers is not None:
        return parse_rate_limit_headers(error.headers)
    return None


async def execute_with_retry(
    attempt_fn: AttemptFunc,
    *,
    strategy: Optional[RetryStrategy] = None,
    predicate: Optional[RetryPredicate] = None,
    rate_limit: Optional[RateLimitConfig] = None,
    observer: Optional[CallObserver] = None,
    rng: Optional[random.Random] = None,
    sleep_func: Optional[SleepFunc] = None,
    now: Optional[Clock] = None,
    operation: str = "call",
) -> "ResponseEnvelope[T]":
    """Execute ``attempt_fn`` until it succeeds, fails for good, or retries run out.

    Args:
        attempt_fn: Performs one attempt. Receives the 1-indexed attempt
            number and returns an envelope or raises ``CallError``.
        strategy: Retry strategy (default: ``NoRetry``).
        predicate: Retry predicate (default: ``RetryOnRetryable``).
        rate_limit: Rate-limit configuration (default: enabled, 300s cap).
        observer: Event sink (default: ``LoggingObserver``).
        rng: Injectable Random instance for deterministic jitter.
        sleep_func: Injectable sleep function for time control in tests.
        now: Injectable wall clock for rate-limit reset arithmetic.
        operation: Label used in events, e.g. ``"GET /users"``.

    Returns:
        The successful envelope, with ``attempts`` and ``latency`` covering
        the whole call.

    Raises:
        MaxRetriesExceededError: The strategy declined a further retry.
        CallError: A non-retryable error, re-raised unchanged.
        asyncio.CancelledError: The call was cancelled.

    Example:
        >>> envelope = await execute_with_retry(
        ...     lambda attempt: send_once(),
        ...     strategy=ExponentialBackoff(initial_delay=0.1, max_retries=3),
        ... )
    """
    _strategy = strategy or NoRetry()
    _predicate = predicate or DEFAULT_PREDICATE
    _rate_limit = rate_limit or RateLimitConfig()
    _observer = observer or LoggingObserver()
    _rng = rng or random.Random()
    _sleep = sleep_func or asyncio.sleep

    state = _CallState()
    start_time = time.monotonic()

    def _emit(event_type: CallEventType, level: int, **details: object) -> None:
        _observer(
            CallEvent(
                event_type=event_type,
                level=level,
                operation=operation,
                attempt=state.attempt,
                details=dict(details),
            )
        )

    while True:
        state.attempt += 1
        try:
            envelope = await attempt_fn(state.attempt)
        except _PREFLIGHT_ERRORS:
            state.outcome = CallOutcome.FAILED
            raise
        except CallError as e:
            state.last_error = e
            _emit(
                CallEventType.ATTEMPT_FAILED,
                error_severity(e),
                error_type=e.kind.value,
                error_message=str(e)[:200],
                status=e.status,
            )

            if not _predicate.should_retry(e, state.attempt):
                state.outcome = CallOutcome.FAILED
                raise

            decision = resolve_retry_decision(
                _strategy,
                state.attempt,
                _rate_limit_info_for(e),
                _rate_limit,
                rng=_rng,
                now=now,
            )
            if decision is None:
                state.outcome = CallOutcome.EXHAUSTED
                _emit(
                    CallEventType.EXHAUSTED,
                    logging.WARNING,
                    attempts=state.attempt,
                    error_type=e.kind.value,
                    outcome=state.outcome.value,
                    total_delay_ms=int(sum(state.delays) * 1000),
                )
                raise MaxRetriesExceededError(state.attempt, e) from e

            state.delays.append(decision.delay)
            _emit(
                CallEventType.RATE_LIMITED if decision.rate_limited else CallEventType.RETRY_SCHEDULED,
                logging.INFO,
                delay_ms=int(decision.delay * 1000),
                max_wait_seconds=_rate_limit.max_wait,
            )
            try:
                await _sleep(decision.delay)
            except asyncio.CancelledError:
                _emit(
                    CallEventType.CANCELLED,
                    logging.INFO,
                    attempts=state.attempt,
                    pending_delay_ms=int(decision.delay * 1000),
                    last_error_type=state.last_error.kind.value,
                )
                raise
        else:
            state.outcome = CallOutcome.DONE
            latency = time.monotonic() - start_time
            _emit(
                CallEventType.SUCCEEDED,
                logging.INFO,
                status=envelope.status,
                latency_ms=int(latency * 1000),
                attempts=state.attempt,
                outcome=state.outcome.value,
                total_delay_ms=int(sum(state.delays) * 1000),
            )
            return envelope.with_call_totals(latency=latency, attempts=state.attempt)
