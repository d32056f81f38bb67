"""
In-process event channel.

Simple synchronous pub/sub used by the orchestration layer to broadcast state
changes (new location, new discoveries, recorded scans, map state) to whoever
renders them. Handlers run in subscription order on the publisher's call stack.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

LOCATION_CHANGED = "location.changed"
DISCOVERIES_CREATED = "discoveries.created"
SCAN_RECORDED = "scan.recorded"
MAP_STATE_CHANGED = "map_state.changed"

Handler = Callable[[Any], None]


class EventChannel:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register `handler` for `topic`; returns a callable that unsubscribes it."""
        self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            try:
                self._subscribers[topic].remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def publish(self, topic: str, payload: Any = None) -> int:
        """Deliver `payload` to every subscriber of `topic`; returns how many were called."""
        handlers = list(self._subscribers.get(topic, ()))
        logger.debug("Publishing %s to %d subscriber(s)", topic, len(handlers))
        for handler in handlers:
            handler(payload)
        return len(handlers)
