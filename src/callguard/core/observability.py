"""Call events and observers.

The execution loop does not log directly. It emits a ``CallEvent`` for each
notable transition to an injectable ``CallObserver``. The default
``LoggingObserver`` writes events to the ``callguard.events`` logger, so
tests can assert on emitted severities without capturing real log output.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


class CallEventType(Enum):
    """Types of events emitted during a call."""

    ATTEMPT_FAILED = "attempt_failed"
    RETRY_SCHEDULED = "retry_scheduled"
    RATE_LIMITED = "rate_limited"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class CallEvent:
    """Structured event emitted by the execution loop."""

    event_type: CallEventType
    level: int
    operation: str
    attempt: int
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def message(self) -> str:
        return f"{self.operation}: {self.event_type.value} (attempt {self.attempt})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "event_type": self.event_type.value,
            "level": logging.getLevelName(self.level),
            "operation": self.operation,
            "attempt": self.attempt,
            "timestamp": self.timestamp,
            "details": self.details,
        }


class CallObserver(Protocol):
    """Receives call events."""

    def __call__(self, event: CallEvent) -> None: ...


class LoggingObserver:
    """Writes call events to a logger at the event's level."""

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name or "callguard.events")

    def __call__(self, event: CallEvent) -> None:
        self._logger.log(event.level, event.message, extra={"call_event": event.to_dict()})


class CollectingObserver:
    """Keeps every event in memory."""

    def __init__(self) -> None:
        self.events: List[CallEvent] = []

    def __call__(self, event: CallEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: CallEventType) -> List[CallEvent]:
        return [e for e in self.events if e.event_type == event_type]
