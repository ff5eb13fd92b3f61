"""
Event bus for the heading-hold loop.

Thread-safe publish/subscribe.  Events come from the control task and the
heartbeat thread; callbacks run synchronously on whichever thread emits,
so subscribers must be quick and must not block.
"""

import threading
from enum import Enum

from headinghold.logutil import get_logger

log = get_logger("event_bus")


class EventType(Enum):
    ATTITUDE_UPDATED = "attitude_updated"
    CONTROL_UPDATED = "control_updated"
    HEARTBEAT_FAILED = "heartbeat_failed"
    LOOP_TERMINATED = "loop_terminated"


class EventBus:
    """Thread-safe event bus with synchronous dispatch."""

    def __init__(self):
        self._subscribers: dict[EventType, list] = {}
        self._lock = threading.Lock()  # protects _subscribers dict

    def subscribe(self, event_type: EventType, callback):
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: EventType, callback):
        with self._lock:
            try:
                self._subscribers.get(event_type, []).remove(callback)
            except ValueError:
                pass  # already removed

    def has_subscribers(self, event_type: EventType) -> bool:
        """Return True if any callbacks are registered for this event type."""
        with self._lock:
            return bool(self._subscribers.get(event_type))

    def emit(self, event_type: EventType, data=None):
        """Emit an event to every subscriber on the calling thread."""
        # Copy under the lock, call outside it: a callback may subscribe
        # or unsubscribe.
        with self._lock:
            callbacks = list(self._subscribers.get(event_type, []))
        for cb in callbacks:
            try:
                cb(data)
            except Exception:
                log.exception("Subscriber for %s failed", event_type.value)
