"""Retry and rate-limit policy layer.

Centralized resilience utilities for outbound calls including:
- Retry strategies (exponential, linear, custom) with injectable jitter
- Composable retry predicates
- Rate-limit header parsing and delay arbitration
- The attempt execution loop tying them together
"""

from callguard.core.resilience.execution import (
    CallOutcome,
    execute_with_retry,
)
from callguard.core.resilience.models import (
    DEFAULT_MAX_WAIT,
    RateLimitConfig,
    RateLimitInfo,
    SleepFunc,
)
from callguard.core.resilience.predicates import (
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
from callguard.core.resilience.rate_limit import (
    RetryDecision,
    parse_rate_limit_headers,
    recommended_delay,
    resolve_retry_decision,
    resolve_retry_delay,
)
from callguard.core.resilience.strategy import (
    CustomRetry,
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    RetryStrategy,
    apply_jitter,
)

__all__ = [
    # Models
    "DEFAULT_MAX_WAIT",
    "RateLimitConfig",
    "RateLimitInfo",
    "SleepFunc",
    # Strategies
    "RetryStrategy",
    "NoRetry",
    "ExponentialBackoff",
    "LinearBackoff",
    "CustomRetry",
    "apply_jitter",
    # Predicates
    "RetryPredicate",
    "RetryOnRetryable",
    "RetryOn5xx",
    "RetryOnTimeout",
    "RetryOnConnectionError",
    "RetryOnStatus",
    "RetryIf",
    "OrPredicate",
    "AndPredicate",
    "DEFAULT_PREDICATE",
    # Rate limits
    "RetryDecision",
    "parse_rate_limit_headers",
    "recommended_delay",
    "resolve_retry_decision",
    "resolve_retry_delay",
    # Execution
    "CallOutcome",
    "execute_with_retry",
]
