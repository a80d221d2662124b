"""Rate-limit header parsing and retry delay arbitration.

Parsing helpers:
    - parse_rate_limit_headers(headers) -> RateLimitInfo
    - recommended_delay(info, max_wait) -> Optional[float]

Arbitration:
    - resolve_retry_decision(strategy, attempt, info, config) -> Optional[RetryDecision]
    - resolve_retry_delay(strategy, attempt, info, config) -> Optional[float]

Header parsing never fails a request: a malformed header is logged at DEBUG
and treated as absent.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional, Union

import httpx

from callguard.core.resilience.models import (
    Clock,
    RateLimitConfig,
    RateLimitInfo,
    utc_now,
)
from callguard.core.resilience.strategy import RetryStrategy, apply_jitter

logger = logging.getLogger(__name__)

RETRY_AFTER = "retry-after"
X_RATELIMIT_RESET = "x-ratelimit-reset"
RATELIMIT_RESET = "ratelimit-reset"
X_RATELIMIT_REMAINING = "x-ratelimit-remaining"

_UNSIGNED_INT = re.compile(r"^\d+$")

HeadersLike = Union[httpx.Headers, Mapping[str, str]]


def _parse_unsigned(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    if not _UNSIGNED_INT.match(value):
        return None
    return int(value)


def _parse_retry_after(value: Optional[str], now: datetime) -> Optional[float]:
    """Parse ``Retry-After`` as delay-seconds or an HTTP-date."""
    if value is None:
        return None

    seconds = _parse_unsigned(value)
    if seconds is not None:
        return float(seconds)

    try:
        when = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        logger.debug("Ignoring unparsable Retry-After header: %r", value)
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    remaining = (when - now).total_seconds()
    if remaining < 0:
        return None
    return remaining


def _parse_reset(value: Optional[str]) -> Optional[datetime]:
    """Parse a Unix-seconds reset timestamp."""
    timestamp = _parse_unsigned(value)
    if timestamp is None:
        if value is not None:
            logger.debug("Ignoring unparsable rate-limit reset header: %r", value)
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug("Ignoring out-of-range rate-limit reset header: %r", value)
        return None


def parse_rate_limit_headers(
    headers: HeadersLike,
    *,
    now: Optional[Clock] = None,
) -> RateLimitInfo:
    """Extract rate-limit information from HTTP response headers.

    Recognized headers (case-insensitive):
        - ``Retry-After``: delay-seconds or HTTP-date
        - ``X-RateLimit-Reset`` (falls back to ``RateLimit-Reset``): Unix seconds
        - ``X-RateLimit-Remaining``: non-negative integer

    Each header is parsed independently; a bad value only blanks its own
    field.

    Args:
        headers: Response headers.
        now: Clock used to turn an HTTP-date into a relative delay.

    Returns:
        A ``RateLimitInfo``; fields are ``None`` where no usable header exists.
    """
    _headers = headers if isinstance(headers, httpx.Headers) else httpx.Headers(headers)
    current = (now or utc_now)()

    retry_after = _parse_retry_after(_headers.get(RETRY_AFTER), current)

    reset_at = _parse_reset(_headers.get(X_RATELIMIT_RESET))
    if reset_at is None:
        reset_at = _parse_reset(_headers.get(RATELIMIT_RESET))

    remaining_header = _headers.get(X_RATELIMIT_REMAINING)
    remaining = _parse_unsigned(remaining_header)
    if remaining is None and remaining_header is not None:
        logger.debug("Ignoring unparsable X-RateLimit-Remaining header: %r", remaining_header)

    return RateLimitInfo(retry_after=retry_after, reset_at=reset_at, remaining=remaining)


def _rate_limit_candidate(
    info: RateLimitInfo,
    *,
    respect_retry_after: bool,
    now: Clock,
) -> Optional[float]:
    if info.retry_after is not None and respect_retry_after:
        return info.retry_after
    if info.reset_at is not None:
        return max(0.0, (info.reset_at - now()).total_seconds())
    return None


def recommended_delay(
    info: RateLimitInfo,
    max_wait: float,
    *,
    respect_retry_after: bool = True,
    now: Optional[Clock] = None,
) -> Optional[float]:
    """Wait suggested by the rate-limit headers alone, capped at ``max_wait``.

    No strategy and no jitter are involved; this is meant for callers that
    want to act on a rate limit themselves after a call was exhausted.

    Returns:
        Seconds to wait, or ``None`` if the headers give no guidance.
    """
    candidate = _rate_limit_candidate(
        info, respect_retry_after=respect_retry_after, now=now or utc_now
    )
    if candidate is None:
        return None
    return min(candidate, max_wait)


@dataclass(frozen=True)
class RetryDecision:
    """Resolved wait before the next attempt.

    Attributes:
        delay: Seconds to wait.
        rate_limited: True if the delay came from rate-limit headers.
    """

    delay: float
    rate_limited: bool = False


def resolve_retry_decision(
    strategy: RetryStrategy,
    attempt: int,
    info: Optional[RateLimitInfo],
    config: RateLimitConfig,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[Clock] = None,
) -> Optional[RetryDecision]:
    """Decide how long to wait before the next attempt.

    Resolution order:
    1. Strategy says stop -> ``None``; rate-limit headers never extend retries.
    2. Rate limiting disabled, or no response received -> strategy delay.
    3. ``Retry-After`` (if respected), else a reset time -> candidate,
       clamped to ``config.max_wait``; the candidate wins over the strategy.
    4. No candidate -> strategy delay.
    5. The strategy's jitter applies to whichever delay won.

    Args:
        strategy: The configured retry strategy.
        attempt: The attempt that just failed (1-indexed).
        info: Rate-limit info from the failed response, ``None`` if there
            was no response.
        config: Rate-limit configuration.
        rng: Injectable Random instance for deterministic jitter.
        now: Injectable clock.

    Returns:
        The decision, or ``None`` to stop retrying.
    """
    base_delay = strategy.base_delay_for(attempt)
    if base_delay is None:
        return None

    delay = base_delay
    rate_limited = False
    if config.enabled and info is not None:
        candidate = recommended_delay(
            info,
            config.max_wait,
            respect_retry_after=config.respect_retry_after,
            now=now,
        )
        if candidate is not None:
            delay = candidate
            rate_limited = True

    if strategy.jitter:
        delay = apply_jitter(delay, rng)
    return RetryDecision(delay=delay, rate_limited=rate_limited)


def resolve_retry_delay(
    strategy: RetryStrategy,
    attempt: int,
    info: Optional[RateLimitInfo],
    config: RateLimitConfig,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[Clock] = None,
) -> Optional[float]:
    """Seconds to wait before the next attempt, or ``None`` to stop.

    See ``resolve_retry_decision`` for the resolution order.
    """
    decision = resolve_retry_decision(strategy, attempt, info, config, rng=rng, now=now)
    return decision.delay if decision is not None else None
