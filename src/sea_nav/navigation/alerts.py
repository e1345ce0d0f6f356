"""Bounded, de-duplicated alert log for consumers of ``NavigationAlert`` events."""
from __future__ import annotations

from collections import deque
from datetime import timedelta
from typing import Deque, List

from sea_nav.core.models import NavigationAlert


class AlertLog:
    """
    Most-recent-first log of at most ``max_len`` alerts.

    An alert identical in (type, message) to one already logged within
    ``dedupe_window_s`` is dropped; the controller emits approach and
    off-course alerts on every fix and relies on this to avoid spam.
    """

    def __init__(self, max_len: int = 5, dedupe_window_s: float = 30.0):
        self.max_len = max_len
        self.dedupe_window = timedelta(seconds=dedupe_window_s)
        self._alerts: Deque[NavigationAlert] = deque(maxlen=max_len)

    def add(self, alert: NavigationAlert) -> bool:
        for prev in self._alerts:
            if (
                prev.type == alert.type
                and prev.message == alert.message
                and abs(alert.timestamp - prev.timestamp) < self.dedupe_window
            ):
                return False
        self._alerts.appendleft(alert)
        return True

    def dismiss(self, index: int) -> None:
        del self._alerts[index]

    def clear(self) -> None:
        self._alerts.clear()

    @property
    def alerts(self) -> List[NavigationAlert]:
        return list(self._alerts)

    def __len__(self) -> int:
        return len(self._alerts)
