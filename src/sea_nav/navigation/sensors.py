"""Device sensor contracts: position stream, compass stream, haptics and speech.

Real platforms implement ``PositionSource``/``OrientationSource``; the
``Manual*`` sources are push-driven and serve track replay and tests.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Literal, Optional

from sea_nav.core.models import PositionFix

log = logging.getLogger(__name__)


PositionErrorKind = Literal["permission-denied", "position-unavailable", "timeout"]

FixCallback = Callable[[PositionFix], None]
ErrorCallback = Callable[["PositionError"], None]
HeadingCallback = Callable[[float], None]


class PositionError(Exception):
    """Classified failure of the position stream."""

    def __init__(self, kind: PositionErrorKind, message: str = ""):
        super().__init__(message or kind)
        self.kind = kind


class Subscription:
    """Handle returned by ``subscribe``; ``cancel`` is idempotent."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None):
        self._on_cancel = on_cancel
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_cancel is not None:
            self._on_cancel()


class PositionSource(ABC):
    def request_permission(self) -> bool:
        return True

    @abstractmethod
    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        raise NotImplementedError


class OrientationSource(ABC):
    def request_permission(self) -> bool:
        return True

    @abstractmethod
    def subscribe(self, on_heading: HeadingCallback) -> Subscription:
        raise NotImplementedError


class DeviceCapabilities:
    """Haptic and speech sinks.  Defaults do nothing, so a headless host just works."""

    def vibrate(self, pattern: List[int]) -> None:
        log.debug("vibrate %s (no haptics)", pattern)

    def speak(self, text: str) -> None:
        log.debug("speak %r (no speech)", text)


# ---------------------------------------------------------------------------
# Push-driven sources
# ---------------------------------------------------------------------------

class ManualPositionSource(PositionSource):
    def __init__(self, permission_granted: bool = True):
        self.permission_granted = permission_granted
        self._on_fix: Optional[FixCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    @property
    def subscribed(self) -> bool:
        return self._on_fix is not None

    def request_permission(self) -> bool:
        return self.permission_granted

    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        self._on_fix = on_fix
        self._on_error = on_error
        return Subscription(self._unsubscribe)

    def _unsubscribe(self) -> None:
        self._on_fix = None
        self._on_error = None

    def push(self, fix: PositionFix) -> None:
        if self._on_fix is not None:
            self._on_fix(fix)

    def fail(self, error: PositionError) -> None:
        if self._on_error is not None:
            self._on_error(error)

    def replay(self, fixes: Iterable[PositionFix]) -> int:
        """Push a recorded track; stops early once unsubscribed.  Returns fixes delivered."""
        n = 0
        for fix in fixes:
            if self._on_fix is None:
                break
            self.push(fix)
            n += 1
        return n


class ManualOrientationSource(OrientationSource):
    def __init__(self, permission_granted: bool = True):
        self.permission_granted = permission_granted
        self._on_heading: Optional[HeadingCallback] = None

    @property
    def subscribed(self) -> bool:
        return self._on_heading is not None

    def request_permission(self) -> bool:
        return self.permission_granted

    def subscribe(self, on_heading: HeadingCallback) -> Subscription:
        self._on_heading = on_heading
        return Subscription(self._unsubscribe)

    def _unsubscribe(self) -> None:
        self._on_heading = None

    def push(self, heading_deg: float) -> None:
        if self._on_heading is not None:
            self._on_heading(heading_deg)
