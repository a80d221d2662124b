"""Core building blocks: errors, policy layer, envelope, transport and codec."""

from callguard.core.codec import decode_body, encode_body, response_adapter
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
    CallObserver,
    CollectingObserver,
    LoggingObserver,
)
from callguard.core.response import ResponseEnvelope
from callguard.core.transport import HttpxTransport, RawResponse, Transport

__all__ = [
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
    # Request / response
    "RequestMetadata",
    "ResponseEnvelope",
    # Observability
    "CallEvent",
    "CallEventType",
    "CallObserver",
    "CollectingObserver",
    "LoggingObserver",
    # Transport and codec
    "HttpxTransport",
    "RawResponse",
    "Transport",
    "decode_body",
    "encode_body",
    "response_adapter",
]
