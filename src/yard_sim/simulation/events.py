"""Yard event log and event bus.

Every state change in the engine is published as a YardEvent. The event
is appended to the EventLog first and then handed to each subscriber, in
emission order. Renderers and dashboards only ever learn about the yard
through this stream (or through snapshots).
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
from uuid import uuid4

from yard_sim.models.enums import EventType, Severity

logger = logging.getLogger(__name__)

EventHandler = Callable[["YardEvent"], None]


@dataclass(frozen=True)
class YardEvent:
    """A single yard event. Never mutated after creation."""

    id: str
    """Unique event identifier"""

    timestamp: float
    """Simulation time when the event was emitted (seconds)"""

    type: EventType
    """Category of event"""

    message: str
    """Human-readable description"""

    severity: Severity = Severity.INFO
    """How the event should be presented"""

    train_id: Optional[str] = None
    """Train the event concerns, if any"""

    data: dict[str, Any] = field(default_factory=dict)
    """Additional event-specific payload"""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialisation."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "train_id": self.train_id,
            "message": self.message,
            "severity": self.severity.value,
            "data": copy.deepcopy(self.data),
        }


class EventLog:
    """Append-only, ordered record of yard events."""

    def __init__(self):
        self._events: list[YardEvent] = []

    def append(self, event: YardEvent) -> None:
        """Record an event."""
        self._events.append(event)

    @property
    def events(self) -> list[YardEvent]:
        """All events in emission order."""
        return list(self._events)

    def filter_by_type(self, event_type: EventType) -> list[YardEvent]:
        """Get events of a specific type."""
        return [e for e in self._events if e.type == event_type]

    def filter_by_train(self, train_id: str) -> list[YardEvent]:
        """Get events for a specific train."""
        return [e for e in self._events if e.train_id == train_id]

    def filter_by_severity(self, severity: Severity) -> list[YardEvent]:
        """Get events with a specific severity."""
        return [e for e in self._events if e.severity == severity]

    def filter_by_time(
        self,
        start: float = 0,
        end: Optional[float] = None,
    ) -> list[YardEvent]:
        """Get events within a time range."""
        events = [e for e in self._events if e.timestamp >= start]
        if end is not None:
            events = [e for e in events if e.timestamp <= end]
        return events

    def last(self) -> Optional[YardEvent]:
        """Most recent event, if any."""
        return self._events[-1] if self._events else None

    # === Export ===

    def to_list(self) -> list[dict[str, Any]]:
        """Export all events as list of dicts."""
        return [e.to_dict() for e in self._events]

    def to_dataframe(self):
        """Export events to pandas DataFrame (payloads left out)."""
        import pandas as pd

        records = []
        for e in self._events:
            record = e.to_dict()
            record.pop("data")
            records.append(record)
        return pd.DataFrame(
            records,
            columns=["id", "timestamp", "type", "train_id", "message", "severity"],
        )

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def __repr__(self) -> str:
        return f"EventLog({len(self._events)} events)"


class EventBus:
    """Synchronous publish/subscribe channel in front of an EventLog.

    Args:
        clock: Callable returning the current simulation time
        log: Log to append to (a new one if omitted)
    """

    def __init__(self, clock: Callable[[], float], log: Optional[EventLog] = None):
        self._clock = clock
        self.log = log if log is not None else EventLog()
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        """Register a handler; it receives every event emitted from now on."""
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def emit(
        self,
        event_type: EventType,
        message: str,
        severity: Severity = Severity.INFO,
        train_id: Optional[str] = None,
        **data: Any,
    ) -> YardEvent:
        """Create an event, append it to the log and notify subscribers."""
        event = YardEvent(
            id=uuid4().hex[:9],
            timestamp=self._clock(),
            type=event_type,
            message=message,
            severity=severity,
            train_id=train_id,
            data=copy.deepcopy(data),
        )
        self.log.append(event)
        logger.debug("[%s] %s: %s", event.timestamp, event.type.value, event.message)

        # Handlers added or removed during delivery take effect next event
        for handler in list(self._handlers):
            handler(event)

        return event
