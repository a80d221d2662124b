"""Resilience data models and protocols.

Defines the core types shared across the resilience sub-package:
- RateLimitInfo parsed from response headers
- RateLimitConfig governing rate-limit delay arbitration
- SleepFunc protocol for injectable async sleep
- Clock type for injectable wall-clock time
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from callguard.core.errors import ConfigurationError

DEFAULT_MAX_WAIT = 300.0

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit information extracted from one response's headers.

    Absent fields mean the header was missing or could not be parsed.

    Attributes:
        retry_after: Seconds to wait, from ``Retry-After``.
        reset_at: When the window resets, from ``X-RateLimit-Reset``.
        remaining: Requests left in the window, from ``X-RateLimit-Remaining``.
    """

    retry_after: Optional[float] = None
    reset_at: Optional[datetime] = None
    remaining: Optional[int] = None

    @property
    def is_rate_limited(self) -> bool:
        """True if the server asked us to back off or the window is empty."""
        return self.retry_after is not None or self.remaining == 0

    @property
    def is_empty(self) -> bool:
        return self.retry_after is None and self.reset_at is None and self.remaining is None

    def delay(
        self,
        max_wait: float = DEFAULT_MAX_WAIT,
        *,
        respect_retry_after: bool = True,
        now: Optional[Clock] = None,
    ) -> Optional[float]:
        """Recommended wait before retrying, capped at ``max_wait``."""
        from callguard.core.resilience.rate_limit import recommended_delay

        return recommended_delay(
            self, max_wait, respect_retry_after=respect_retry_after, now=now
        )


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate-limit handling configuration.

    Attributes:
        enabled: Whether rate-limit headers may override the strategy delay.
        max_wait: Cap in seconds on any rate-limit-derived wait.
        respect_retry_after: Whether ``Retry-After`` is honoured.
    """

    enabled: bool = True
    max_wait: float = DEFAULT_MAX_WAIT
    respect_retry_after: bool = True

    def __post_init__(self) -> None:
        if self.max_wait < 0:
            raise ConfigurationError(f"max_wait must be >= 0, got {self.max_wait}")

    @classmethod
    def disabled(cls) -> "RateLimitConfig":
        return cls(enabled=False)


class SleepFunc(Protocol):
    """Protocol for injectable sleep function."""

    async def __call__(self, seconds: float) -> None: ...
