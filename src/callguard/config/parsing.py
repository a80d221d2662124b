"""Parsing helpers for configuration values.

TOML values arrive typed; environment values arrive as strings. Both pass
through these helpers so a bad value fails the same way from either source.
"""

import logging
from typing import Any, Collection, List, Optional

from callguard.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off", ""}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized not in _FALSE_VALUES:
        logger.warning("Unrecognized boolean value %r, treating as false", value)
    return False


def _parse_float(value: Any, name: str, *, minimum: float = 0.0) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def _parse_optional_float(value: Any, name: str) -> Optional[float]:
    """Like ``_parse_float`` but ``"none"``, ``""`` and ``0`` disable the setting."""
    if value is None or str(value).strip().lower() in {"", "none"}:
        return None
    parsed = _parse_float(value, name)
    return parsed or None


def _parse_int(value: Any, name: str, *, minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def _parse_choice(value: Any, name: str, choices: Collection[str]) -> str:
    normalized = str(value).strip().lower()
    if normalized not in choices:
        raise ConfigurationError(
            f"{name} must be one of {', '.join(sorted(choices))}, got {value!r}"
        )
    return normalized


def _parse_status_list(value: Any, name: str) -> List[int]:
    """Parse ``[429, 503]`` or ``"429,503"`` into a list of status codes."""
    items = value.split(",") if isinstance(value, str) else list(value)
    statuses = []
    for item in items:
        if isinstance(item, str) and not item.strip():
            continue
        status = _parse_int(item, name, minimum=100)
        if status > 599:
            raise ConfigurationError(f"{name} entries must be HTTP status codes, got {status}")
        statuses.append(status)
    return statuses
