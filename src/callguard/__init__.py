"""callguard: resilient outbound HTTP calls.

Wraps each HTTP call in a policy layer that decides whether a failed call is
retried, how long to wait first (honoring rate-limit headers), and keeps the
raw response body of every failure for diagnosis.
"""

from callguard.client import Client, build_url
from callguard.config import ClientConfig, get_config, set_config
from callguard.core.errors import (
    CallError,
    ConfigurationError,
    DeserializationError,
    ErrorKind,
    HttpError,
    InvalidUrlError,
    MaxRetriesExceededError,
    NetworkError,
    RequestTimeoutError,
    SerializationError,
    error_severity,
)
from callguard.core.metadata import RequestMetadata
from callguard.core.observability import (
    CallEvent,
    CallEventType,
    CollectingObserver,
    LoggingObserver,
)
from callguard.core.resilience import (
    AndPredicate,
    CustomRetry,
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    OrPredicate,
    RateLimitConfig,
    RateLimitInfo,
    RetryIf,
    RetryOn5xx,
    RetryOnConnectionError,
    RetryOnRetryable,
    RetryOnStatus,
    RetryOnTimeout,
    RetryPredicate,
    RetryStrategy,
    execute_with_retry,
    parse_rate_limit_headers,
    recommended_delay,
    resolve_retry_delay,
)
from callguard.core.response import ResponseEnvelope

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "Client",
    "ClientConfig",
    "RequestMetadata",
    "ResponseEnvelope",
    "build_url",
    "get_config",
    "set_config",
    # Errors
    "CallError",
    "ConfigurationError",
    "DeserializationError",
    "ErrorKind",
    "HttpError",
    "InvalidUrlError",
    "MaxRetriesExceededError",
    "NetworkError",
    "RequestTimeoutError",
    "SerializationError",
    "error_severity",
    # Strategies
    "RetryStrategy",
    "NoRetry",
    "ExponentialBackoff",
    "LinearBackoff",
    "CustomRetry",
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
    # Rate limits
    "RateLimitConfig",
    "RateLimitInfo",
    "parse_rate_limit_headers",
    "recommended_delay",
    "resolve_retry_delay",
    # Execution and events
    "execute_with_retry",
    "CallEvent",
    "CallEventType",
    "CollectingObserver",
    "LoggingObserver",
]
