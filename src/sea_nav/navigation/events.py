"""Single-listener event registry.

One callback per event name: registering again for the same name replaces
the previous callback (last registration wins).  Events with no listener
are dropped, so register before starting navigation.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

log = logging.getLogger(__name__)


NAVIGATION_STARTED = "navigationStarted"
NAVIGATION_STOPPED = "navigationStopped"
NAVIGATION_PAUSED = "navigationPaused"
NAVIGATION_RESUMED = "navigationResumed"
NAVIGATION_UPDATE = "navigationUpdate"
HEADING_UPDATE = "headingUpdate"
WAYPOINT_REACHED = "waypointReached"
WAYPOINT_SKIPPED = "waypointSkipped"
DESTINATION_REACHED = "destinationReached"
DEAD_RECKONING = "deadReckoning"
ALERT = "alert"


Listener = Callable[[Any], None]


class EventRegistry:
    def __init__(self) -> None:
        self._listeners: Dict[str, Listener] = {}

    def on(self, event: str, callback: Listener) -> None:
        self._listeners[event] = callback

    def off(self, event: str) -> None:
        self._listeners.pop(event, None)

    def listener(self, event: str) -> Optional[Listener]:
        return self._listeners.get(event)

    def emit(self, event: str, data: Any = None) -> bool:
        """Deliver to the registered callback.  Returns False when nobody listens."""
        callback = self._listeners.get(event)
        if callback is None:
            return False
        try:
            callback(data)
        except Exception:
            # listener errors never propagate into the update handlers
            log.exception("Listener for %r raised", event)
        return True
