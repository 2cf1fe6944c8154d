# wastewealth/events.py
"""
Synchronous in-process event emitter for store change notifications.

Listeners are called in registration order on the emitting thread. A
listener that raises is logged and skipped so later listeners still
receive the event.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class RequestEvent(Enum):
    """Events published by the request store."""
    REQUEST_ADDED = "request_added"
    REQUESTS_UPDATED = "requests_updated"
    STATS_UPDATED = "stats_updated"
    REQUEST_ACCEPTED = "request_accepted"
    REQUEST_UPDATED = "request_updated"


class EventEmitter:
    """Per-event listener lists with unsubscribe handles."""

    def __init__(self) -> None:
        self._listeners: Dict[RequestEvent, List[Listener]] = {}

    def on(self, event: RequestEvent, listener: Listener) -> Unsubscribe:
        """
        Register a listener.

        Returns:
            A callable that removes this listener. Calling it twice is harmless.
        """
        self._listeners.setdefault(event, []).append(listener)
        return lambda: self.off(event, listener)

    def off(self, event: RequestEvent, listener: Listener) -> None:
        self._listeners[event] = [fn for fn in self._listeners.get(event, []) if fn is not listener]

    def emit(self, event: RequestEvent, payload: Any) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener for '{event.value}' raised")

    def listener_count(self, event: RequestEvent) -> int:
        return len(self._listeners.get(event, []))
