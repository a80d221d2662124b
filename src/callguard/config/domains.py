"""Policy configuration dataclasses.

Small configuration classes for the retry and rate-limit sections of the
config file, each able to build the policy object it describes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from callguard.config.parsing import (
    _parse_bool,
    _parse_choice,
    _parse_float,
    _parse_int,
    _parse_status_list,
)
from callguard.core.resilience import (
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    OrPredicate,
    RateLimitConfig,
    RetryOnRetryable,
    RetryOnStatus,
    RetryPredicate,
    RetryStrategy,
)

_VALID_STRATEGIES = {"none", "exponential", "linear"}


@dataclass
class RetrySettings:
    """Retry policy settings ([retry] section).

    Attributes:
        strategy: One of ``none``, ``exponential``, ``linear``
        max_retries: Retries allowed after the first attempt
        initial_delay: First exponential delay (seconds)
        max_delay: Cap on any exponential delay (seconds)
        delay: Constant linear delay (seconds)
        jitter: Apply full jitter to exponential delays
        retry_on_status: Extra status codes to retry (e.g. 429), on top of
            network errors, timeouts and 5xx
    """

    strategy: str = "none"
    max_retries: int = 3
    initial_delay: float = 0.1
    max_delay: float = 30.0
    delay: float = 1.0
    jitter: bool = True
    retry_on_status: List[int] = field(default_factory=list)

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RetrySettings":
        """Create settings from a TOML dict (the [retry] section).

        Args:
            data: Dict from TOML parsing

        Returns:
            RetrySettings instance
        """
        return cls(
            strategy=_parse_choice(data.get("strategy", "none"), "retry.strategy", _VALID_STRATEGIES),
            max_retries=_parse_int(data.get("max_retries", 3), "retry.max_retries"),
            initial_delay=_parse_float(data.get("initial_delay", 0.1), "retry.initial_delay"),
            max_delay=_parse_float(data.get("max_delay", 30.0), "retry.max_delay"),
            delay=_parse_float(data.get("delay", 1.0), "retry.delay"),
            jitter=_parse_bool(data.get("jitter", True)),
            retry_on_status=_parse_status_list(data.get("retry_on_status", []), "retry.retry_on_status"),
        )

    def build_strategy(self) -> RetryStrategy:
        if self.strategy == "exponential":
            return ExponentialBackoff(
                initial_delay=self.initial_delay,
                max_delay=self.max_delay,
                max_retries=self.max_retries,
                jitter=self.jitter,
            )
        if self.strategy == "linear":
            return LinearBackoff(delay=self.delay, max_retries=self.max_retries)
        return NoRetry()

    def build_predicate(self) -> RetryPredicate:
        if not self.retry_on_status:
            return RetryOnRetryable()
        return OrPredicate([RetryOnRetryable(), RetryOnStatus(self.retry_on_status)])


@dataclass
class RateLimitSettings:
    """Rate-limit header handling ([rate_limit] section).

    Attributes:
        enabled: Honor rate-limit headers when computing retry delays
        max_wait: Cap on any header-derived wait (seconds)
        respect_retry_after: Use ``Retry-After`` when present
    """

    enabled: bool = True
    max_wait: float = 300.0
    respect_retry_after: bool = True

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RateLimitSettings":
        return cls(
            enabled=_parse_bool(data.get("enabled", True)),
            max_wait=_parse_float(data.get("max_wait", 300.0), "rate_limit.max_wait"),
            respect_retry_after=_parse_bool(data.get("respect_retry_after", True)),
        )

    def build_config(self) -> RateLimitConfig:
        return RateLimitConfig(
            enabled=self.enabled,
            max_wait=self.max_wait,
            respect_retry_after=self.respect_retry_after,
        )
