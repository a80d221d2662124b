"""Request/response body codec built on pydantic.

- encode_body(body) -> bytes
- response_adapter(response_type) -> Optional[TypeAdapter]
- decode_body(response, response_type, adapter) -> typed value

Decoding failures raise ``DeserializationError`` carrying the original body
unchanged, so callers can always see what the server actually sent.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import PydanticUserError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from callguard.core.errors import ConfigurationError, DeserializationError, SerializationError
from callguard.core.transport import RawResponse

JSON_CONTENT_TYPE = "application/json"


def encode_body(body: Any) -> bytes:
    """Serialize an outbound body to JSON bytes.

    ``bytes`` are sent unchanged; anything else (dicts, dataclasses,
    pydantic models) goes through pydantic's JSON serializer.

    Raises:
        SerializationError: The body cannot be represented as JSON.
    """
    if isinstance(body, bytes):
        return body
    try:
        return to_json(body)
    except PydanticSerializationError as e:
        raise SerializationError(str(e)) from e


def response_adapter(response_type: Any = Any) -> Optional[TypeAdapter[Any]]:
    """Build the validator for ``response_type`` ahead of any request.

    Returns ``None`` for ``str`` and ``bytes``, which are never parsed.

    Raises:
        ConfigurationError: pydantic cannot build a schema for the type.
    """
    if response_type is str or response_type is bytes:
        return None
    target = type(None) if response_type is None else response_type
    try:
        return TypeAdapter(target)
    except PydanticUserError as e:
        raise ConfigurationError(f"cannot decode responses as {response_type!r}: {e}") from e


def decode_body(
    response: RawResponse,
    response_type: Any = Any,
    adapter: Optional[TypeAdapter[Any]] = None,
) -> Any:
    """Parse a response body into ``response_type``.

    ``str`` returns the body text and ``bytes`` the raw content. An empty body
    decodes to ``None`` when ``response_type`` is ``Any`` or ``None``. Pass
    ``adapter`` from ``response_adapter`` to reuse it across attempts.

    Raises:
        DeserializationError: The body does not parse as ``response_type``.
        ConfigurationError: No adapter was given and none can be built.
    """
    if response_type is bytes:
        return response.content
    if response_type is str:
        return response.text
    if not response.content and response_type in (Any, None, type(None)):
        return None

    if adapter is None:
        adapter = response_adapter(response_type)
    try:
        return adapter.validate_json(response.content)
    except ValidationError as e:
        raise DeserializationError(
            raw_response=response.text,
            detail=str(e),
            status=response.status,
            headers=response.headers,
        ) from e
