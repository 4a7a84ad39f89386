"""In-process domain events for waiting list changes.

Services publish after a successful commit. Subscribers run synchronously;
a failing subscriber is logged and does not stop the others.
"""

import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from waitlist.common.clock import utcnow
from waitlist.core.logging import get_logger

logger = get_logger(__name__)


class EventType(Enum):
    """Types of events published by the waiting list services."""

    ACCOUNT_ADDED = "waiting_list.account_added"
    ACCOUNT_REMOVED = "waiting_list.account_removed"
    WAITING_LIST_CHANGED = "waiting_list.changed"


@dataclass(frozen=True)
class Event:
    """Immutable event.

    Attributes:
        event_type: The kind of event.
        payload: Data carried by the event.
        source: Component that published the event.
        timestamp: When the event was created (UTC).
        correlation_id: Ties the events of one operation together.
    """

    event_type: EventType
    payload: dict
    source: str
    timestamp: datetime = field(default_factory=utcnow)
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))


def account_removed(
    *,
    waiting_list_id: int,
    account_id: int,
    reason: str,
    actor_id: int,
    custom_reason: str | None,
    timestamp: datetime,
    correlation_id: str,
) -> Event:
    return Event(
        event_type=EventType.ACCOUNT_REMOVED,
        payload={
            "waiting_list_id": waiting_list_id,
            "account_id": account_id,
            "reason": reason,
            "actor_id": actor_id,
            "custom_reason": custom_reason,
            "timestamp": timestamp.isoformat(),
        },
        source="removal",
        timestamp=timestamp,
        correlation_id=correlation_id,
    )


def waiting_list_changed(waiting_list_id: int, source: str, correlation_id: str) -> Event:
    """UI refresh trigger: list state changed."""
    return Event(
        event_type=EventType.WAITING_LIST_CHANGED,
        payload={"waiting_list_id": waiting_list_id},
        source=source,
        correlation_id=correlation_id,
    )


Subscriber = Callable[[Event], None]


class EventBus:
    """Thread-safe in-memory publish/subscribe bus."""

    def __init__(self) -> None:
        self._subscribers: dict[EventType, list[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)
        logger.debug("Subscribed %s to %s", callback, event_type.value)

    def unsubscribe(self, event_type: EventType, callback: Subscriber) -> None:
        """Remove a subscriber; unknown callbacks are ignored."""
        with self._lock:
            callbacks = self._subscribers.get(event_type, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def publish(self, event: Event) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(event.event_type, []))

        logger.info(
            "Publishing %s to %d subscriber(s)",
            event.event_type.value,
            len(callbacks),
            extra={"correlation_id": event.correlation_id, "source": event.source},
        )

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Subscriber %s failed for %s (correlation_id=%s)",
                    callback,
                    event.event_type.value,
                    event.correlation_id,
                )


_event_bus: EventBus | None = None
_singleton_lock = threading.Lock()


def get_event_bus() -> EventBus:
    """Return the process-wide bus."""
    global _event_bus
    if _event_bus is None:
        with _singleton_lock:
            if _event_bus is None:
                _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Replace the singleton with a fresh instance (test isolation)."""
    global _event_bus
    with _singleton_lock:
        _event_bus = EventBus()
