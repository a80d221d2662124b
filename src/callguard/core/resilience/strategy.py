"""Retry strategies: attempt number -> delay before the next attempt.

Attempts are numbered from 1. A strategy returning ``None`` for an attempt
means "stop retrying"; the execution loop treats that as exhaustion no matter
what the retry predicate or rate-limit headers say.

Example:
    >>> strategy = ExponentialBackoff(initial_delay=0.1, max_delay=10.0, max_retries=5)
    >>> [strategy.delay_for(n) for n in range(1, 7)]
    [0.1, 0.2, 0.4, 0.8, 1.6, None]
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from callguard.core.errors import ConfigurationError

DelayFn = Callable[[int], Optional[float]]


def apply_jitter(delay: float, rng: Optional[random.Random] = None) -> float:
    """Full jitter: a uniformly random value in ``[0, delay]``."""
    _rng = rng or random.Random()
    return _rng.uniform(0.0, delay)


class RetryStrategy(ABC):
    """Maps an attempt number to the delay before the next attempt."""

    jitter: bool = False

    @property
    def max_retries(self) -> Optional[int]:
        """Maximum number of retries, or ``None`` if not bounded up front."""
        return None

    @abstractmethod
    def base_delay_for(self, attempt: int) -> Optional[float]:
        """Delay in seconds before retrying after ``attempt``, without jitter.

        Returns ``None`` when no further retry should happen.
        """

    def delay_for(self, attempt: int, rng: Optional[random.Random] = None) -> Optional[float]:
        """Delay in seconds before retrying after ``attempt``, jitter applied."""
        delay = self.base_delay_for(attempt)
        if delay is None or not self.jitter:
            return delay
        return apply_jitter(delay, rng)


@dataclass(frozen=True)
class NoRetry(RetryStrategy):
    """Never retry."""

    @property
    def max_retries(self) -> int:
        return 0

    def base_delay_for(self, attempt: int) -> Optional[float]:
        return None


@dataclass(frozen=True)
class ExponentialBackoff(RetryStrategy):
    """Delay doubles each attempt: ``initial_delay * 2**(attempt - 1)``.

    Attributes:
        initial_delay: Delay after the first attempt, in seconds.
        max_delay: Cap on any single delay, in seconds.
        max_retries: Retries allowed after the first attempt.
        jitter: Replace each delay by a uniform draw from ``[0, delay]``.
    """

    initial_delay: float = 0.1
    max_delay: float = 30.0
    max_retries: int = 3  # type: ignore[assignment]
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.initial_delay < 0:
            raise ConfigurationError(f"initial_delay must be >= 0, got {self.initial_delay}")
        if self.max_delay < self.initial_delay:
            raise ConfigurationError(
                f"max_delay ({self.max_delay}) must be >= initial_delay ({self.initial_delay})"
            )
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")

    def base_delay_for(self, attempt: int) -> Optional[float]:
        if attempt < 1 or attempt > self.max_retries:
            return None
        # 2.0**1024 overflows
        exponent = min(attempt - 1, 1023)
        return min(self.initial_delay * (2.0**exponent), self.max_delay)


@dataclass(frozen=True)
class LinearBackoff(RetryStrategy):
    """Constant delay between attempts.

    Attributes:
        delay: Delay between attempts, in seconds.
        max_retries: Retries allowed after the first attempt.
    """

    delay: float = 1.0
    max_retries: int = 3  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ConfigurationError(f"delay must be >= 0, got {self.delay}")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")

    def base_delay_for(self, attempt: int) -> Optional[float]:
        if attempt < 1 or attempt > self.max_retries:
            return None
        return self.delay


@dataclass(frozen=True)
class CustomRetry(RetryStrategy):
    """Delegate to a caller-supplied ``attempt -> Optional[delay]`` function.

    ``delay_fn`` must be pure and total over attempt numbers so the loop stays
    deterministic; returning ``None`` ends retrying.
    """

    delay_fn: DelayFn

    def __post_init__(self) -> None:
        if not callable(self.delay_fn):
            raise ConfigurationError("CustomRetry.delay_fn must be callable")

    def base_delay_for(self, attempt: int) -> Optional[float]:
        delay = self.delay_fn(attempt)
        if delay is None:
            return None
        return max(0.0, float(delay))
