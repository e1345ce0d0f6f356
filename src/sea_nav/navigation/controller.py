"""Navigation state machine.

Consumes the position and compass streams for one active route, keeps a
rolling speed average and a bounded track history, advances the waypoint
cursor, and reports progress through the event registry:

    idle -> navigating <-> paused
              |-> stopped
              `-> destination_reached

A controller owns its sensor subscriptions; ``stop_navigation`` always
leaves none behind.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, List, Optional, Tuple

from pydantic import ValidationError

from sea_nav.cache import keys
from sea_nav.cache.store import KeyValueStore, cache_get_json, cache_set_json, get_store
from sea_nav.core.geodesy import angle_diff_deg, destination_point, mps_to_kt, validate_coordinates
from sea_nav.core.models import (
    AlertSeverity,
    AlertType,
    DeadReckoningEstimate,
    HistoryPoint,
    NavigationAlert,
    NavigationConfig,
    NavigationPhase,
    NavigationState,
    NavigationStatus,
    PositionFix,
    Route,
    Waypoint,
    utcnow,
)
from sea_nav.core.route import calculate_navigation_state, is_near_waypoint
from sea_nav.navigation import events as ev
from sea_nav.navigation.events import EventRegistry, Listener
from sea_nav.navigation.sensors import (
    DeviceCapabilities,
    OrientationSource,
    PositionError,
    PositionSource,
    Subscription,
)

log = logging.getLogger(__name__)


WAYPOINT_HAPTIC = [200, 100, 200]
DESTINATION_HAPTIC = [300, 100, 300, 100, 300]

# cached track used for offline resume
CACHED_POSITIONS_MAX = 100

_POSITION_ERROR_MESSAGES = {
    "permission-denied": "GPS permission denied. Please enable location services.",
    "position-unavailable": "GPS position unavailable. Using last known position.",
    "timeout": "GPS timeout. Retrying...",
}


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class NavigationController:
    def __init__(
        self,
        position_source: Optional[PositionSource] = None,
        orientation_source: Optional[OrientationSource] = None,
        capabilities: Optional[DeviceCapabilities] = None,
        store: Optional[KeyValueStore] = None,
        config: Optional[NavigationConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.position_source = position_source
        self.orientation_source = orientation_source
        self.capabilities = capabilities or DeviceCapabilities()
        self.store = store if store is not None else get_store()
        self.config = config or NavigationConfig.from_settings()
        self.clock = clock or utcnow
        self.events = EventRegistry()

        self._lock = threading.RLock()
        self._phase: NavigationPhase = "idle"
        self._route: Optional[Route] = None
        self._index = 0
        self._history: Deque[HistoryPoint] = deque(maxlen=self.config.history_size)
        self._speeds: Deque[float] = deque(maxlen=self.config.speed_window)
        self._heading = 0.0
        self._speed = 0.0
        self._position_sub: Optional[Subscription] = None
        self._orientation_sub: Optional[Subscription] = None

    # ── Events ───────────────────────────────────────────────────────────

    def on(self, event: str, callback: Listener) -> None:
        self.events.on(event, callback)

    def off(self, event: str) -> None:
        self.events.off(event)

    # ── Lifecycle ────────────────────────────────────────────────────────

    @property
    def phase(self) -> NavigationPhase:
        return self._phase

    @property
    def is_navigating(self) -> bool:
        return self._phase == "navigating"

    def start_navigation(self, route: Route) -> None:
        if len(route.waypoints) < 2:
            raise ValueError(f"Route {route.id} needs at least 2 waypoints, has {len(route.waypoints)}")

        with self._lock:
            if self._route is not None or self._position_sub is not None:
                self.stop_navigation()

            self._phase = "idle"
            self._route = route
            self._index = 0
            self._history.clear()
            self._speeds.clear()
            self._speed = 0.0
            self._phase = "navigating"

            self._request_permissions()
            self._start_position_tracking()
            self._start_compass_tracking()

            self.events.emit(ev.NAVIGATION_STARTED, {"route": route})
            self._cache_route(route)
            log.info("Navigation started: %s (%d waypoints)", route.name, len(route.waypoints))

    def stop_navigation(self) -> None:
        with self._lock:
            if self._route is None and self._position_sub is None and self._orientation_sub is None:
                log.debug("stop_navigation: no active session")
                return
            self._teardown("stopped")

    def pause_navigation(self) -> None:
        with self._lock:
            if self._phase != "navigating":
                return
            self._phase = "paused"
            self.events.emit(ev.NAVIGATION_PAUSED)
            log.info("Navigation paused")

    def resume_navigation(self) -> None:
        with self._lock:
            if self._route is None or self._phase != "paused":
                return
            self._phase = "navigating"
            self.events.emit(ev.NAVIGATION_RESUMED)
            log.info("Navigation resumed")

    def skip_to_next_waypoint(self) -> bool:
        """Advance the cursor; the final leg can't be skipped.  Returns True if it moved."""
        with self._lock:
            if self._route is None or self._index >= len(self._route.waypoints) - 2:
                return False
            self._index += 1
            wp = self._route.waypoints[self._index]
            self.events.emit(ev.WAYPOINT_SKIPPED, {"waypoint": wp, "index": self._index})
            log.info("Skipped to waypoint %d (%s)", self._index, wp.name)
            return True

    def get_status(self) -> NavigationStatus:
        with self._lock:
            return NavigationStatus(
                phase=self._phase,
                is_navigating=self.is_navigating,
                route=self._route,
                current_waypoint_index=self._index,
                history_length=len(self._history),
            )

    def get_navigation_history(self) -> List[HistoryPoint]:
        with self._lock:
            return list(self._history)

    def load_cached_session(self) -> Tuple[Optional[Route], List[HistoryPoint]]:
        """Last cached active route and track, for resuming after a restart."""
        route = None
        raw_route = cache_get_json(self.store, keys.active_route())
        if raw_route is not None:
            try:
                route = Route.model_validate(raw_route)
            except ValidationError as exc:
                log.warning("Ignoring unreadable cached route: %s", exc)

        points: List[HistoryPoint] = []
        raw_points = cache_get_json(self.store, keys.navigation_positions())
        for p in raw_points if isinstance(raw_points, list) else []:
            try:
                points.append(HistoryPoint.model_validate(p))
            except ValidationError:
                log.debug("Skipping unreadable cached position %r", p)
        return route, points

    # ── Setup / teardown ─────────────────────────────────────────────────

    def _request_permissions(self) -> None:
        if self.position_source is not None:
            try:
                granted = self.position_source.request_permission()
            except Exception as exc:
                log.warning("Location permission request failed: %s", exc)
                granted = False
            if not granted:
                log.warning("Location permission not granted")
                self._alert(
                    "permission-denied",
                    "Location permission denied. Please enable location services.",
                    "error",
                )

        if self.orientation_source is not None:
            try:
                if not self.orientation_source.request_permission():
                    log.info("Orientation permission not granted, relying on GPS course")
            except Exception as exc:
                log.info("Orientation permission not available: %s", exc)

    def _start_position_tracking(self) -> None:
        if self.position_source is None:
            self._alert("gps-error", "GPS not available", "warning")
            return
        self._position_sub = self.position_source.subscribe(
            self._handle_position_update, self._handle_position_error
        )

    def _start_compass_tracking(self) -> None:
        if self.orientation_source is None:
            return
        self._orientation_sub = self.orientation_source.subscribe(self._handle_heading_update)

    def _teardown(self, phase: NavigationPhase) -> None:
        for sub in (self._position_sub, self._orientation_sub):
            if sub is not None:
                sub.cancel()
        self._position_sub = None
        self._orientation_sub = None

        name = self._route.name if self._route is not None else ""
        self._route = None
        self._index = 0
        self._phase = phase

        self.events.emit(ev.NAVIGATION_STOPPED)
        log.info("Navigation %s: %s", phase.replace("_", " "), name)

    # ── Sensor callbacks ─────────────────────────────────────────────────

    def _handle_position_update(self, fix: PositionFix) -> None:
        with self._lock:
            if self._route is None:
                return
            try:
                validate_coordinates(fix.lat, fix.lon)
            except ValueError as exc:
                log.warning("Dropping position fix: %s", exc)
                return

            if fix.heading_deg is not None:
                self._heading = fix.heading_deg % 360.0
            self._speed = self._smooth_speed(mps_to_kt(fix.speed_mps) if fix.speed_mps else 0.0)

            self._history.append(
                HistoryPoint(lat=fix.lat, lon=fix.lon, timestamp=fix.timestamp, speed_kt=self._speed)
            )

            state = calculate_navigation_state(
                fix, self._route, self._index, heading_deg=self._heading, speed_kt=self._speed
            )
            log.debug(
                "fix %.5f,%.5f hdg %.0f spd %.1f kt, %.2f nm to next",
                fix.lat, fix.lon, self._heading, self._speed, state.distance_to_next_nm,
            )
            self.events.emit(ev.NAVIGATION_UPDATE, state)
            self._cache_position(fix)

            if self._phase != "navigating":
                return
            self._check_waypoint_proximity(fix, state)
            if self._phase != "navigating":
                return
            self._check_course_deviation(state)

    def _handle_position_error(self, error: PositionError) -> None:
        with self._lock:
            log.warning("Position error (%s): %s", error.kind, error)
            message = _POSITION_ERROR_MESSAGES.get(error.kind, "GPS error.")
            alert_type: AlertType = "permission-denied" if error.kind == "permission-denied" else "gps-error"
            self._alert(alert_type, message, "warning")

            if len(self._history) >= 2:
                self._dead_reckon()

    def _handle_heading_update(self, heading_deg: float) -> None:
        with self._lock:
            self._heading = heading_deg % 360.0
            self.events.emit(ev.HEADING_UPDATE, {"heading": self._heading})

    # ── Checks ───────────────────────────────────────────────────────────

    def _smooth_speed(self, speed_kt: float) -> float:
        self._speeds.append(speed_kt)
        return sum(self._speeds) / len(self._speeds)

    def _check_waypoint_proximity(self, fix: PositionFix, state: NavigationState) -> None:
        nxt = state.next_waypoint
        if nxt is None:
            return

        d = state.distance_to_next_nm
        if self.config.waypoint_threshold_nm < d < self.config.approach_threshold_nm:
            self._alert("waypoint-approaching", f"Approaching {nxt.name} - {d:.2f} NM", "info", auto_close=True)
            if self._route is None:
                return

        if is_near_waypoint(fix.lat, fix.lon, nxt.lat, nxt.lon, self.config.waypoint_threshold_nm):
            self._handle_waypoint_reached(nxt)

    def _handle_waypoint_reached(self, waypoint: Waypoint) -> None:
        self._notify(WAYPOINT_HAPTIC, f"Waypoint reached: {waypoint.name}")
        self._index += 1

        if self._index >= len(self._route.waypoints) - 1:
            self._handle_destination_reached()
            return

        self._alert("waypoint-reached", f"Reached {waypoint.name}", "success")
        if self._route is None:
            return
        self.events.emit(ev.WAYPOINT_REACHED, {"waypoint": waypoint, "index": self._index})
        log.info("Waypoint %d reached: %s", self._index, waypoint.name)

    def _handle_destination_reached(self) -> None:
        destination = self._route.destination
        self._notify(DESTINATION_HAPTIC, f"Destination reached: {destination.name}")
        self._alert("destination-reached", f"You have arrived at {destination.name}", "success")
        self.events.emit(ev.DESTINATION_REACHED, {"destination": destination})
        # a listener may already have stopped the session
        if self._route is None:
            return
        self._teardown("destination_reached")

    def _check_course_deviation(self, state: NavigationState) -> None:
        if state.next_waypoint is None:
            return

        target = state.bearing_to_next_deg
        if angle_diff_deg(target, state.heading_deg) > self.config.off_course_threshold_deg:
            turn = "left" if target - state.heading_deg > 180.0 else "right"
            self._alert(
                "course-correction",
                f"Off course: Turn {turn} to {round(target)}°",
                "warning",
                auto_close=True,
            )

        if state.speed_kt < self.config.low_speed_kt:
            self._alert("low-speed", "Very low speed detected", "info", auto_close=True)

    def _dead_reckon(self) -> DeadReckoningEstimate:
        last = self._history[-1]
        elapsed_s = (_aware(self.clock()) - _aware(last.timestamp)).total_seconds()
        elapsed_h = max(elapsed_s, 0.0) / 3600.0
        dist = last.speed_kt * elapsed_h
        lat, lon = destination_point(last.lat, last.lon, self._heading, dist)

        estimate = DeadReckoningEstimate(
            from_lat=last.lat,
            from_lon=last.lon,
            heading_deg=self._heading,
            speed_kt=last.speed_kt,
            elapsed_hours=elapsed_h,
            distance_nm=dist,
            lat=lat,
            lon=lon,
        )
        log.info(
            "Dead reckoning: %.3f nm on %.0f° since last fix -> %.5f,%.5f",
            dist, self._heading, lat, lon,
        )
        self.events.emit(ev.DEAD_RECKONING, estimate)
        return estimate

    # ── Output ───────────────────────────────────────────────────────────

    def _alert(self, kind: AlertType, message: str, severity: AlertSeverity, auto_close: bool = False) -> None:
        alert = NavigationAlert(
            type=kind, message=message, severity=severity, timestamp=self.clock(), auto_close=auto_close
        )
        self.events.emit(ev.ALERT, alert)

    def _notify(self, pattern: List[int], text: str) -> None:
        if self.config.enable_vibration:
            try:
                self.capabilities.vibrate(pattern)
            except Exception as exc:
                log.debug("Vibration failed: %s", exc)
        if self.config.enable_voice_alerts:
            try:
                self.capabilities.speak(text)
            except Exception as exc:
                log.debug("Speech failed: %s", exc)

    # ── Persistence ──────────────────────────────────────────────────────

    def _cache_route(self, route: Route) -> None:
        cache_set_json(self.store, keys.active_route(), route.model_dump(mode="json"))
        cache_set_json(self.store, keys.navigation_start_time(), self.clock().isoformat())

    def _cache_position(self, fix: PositionFix) -> None:
        positions: Any = cache_get_json(self.store, keys.navigation_positions())
        if not isinstance(positions, list):
            positions = []
        positions.append(
            {
                "lat": fix.lat,
                "lon": fix.lon,
                "timestamp": fix.timestamp.isoformat(),
                "speed_kt": self._speed,
                "heading_deg": self._heading,
            }
        )
        cache_set_json(self.store, keys.navigation_positions(), positions[-CACHED_POSITIONS_MAX:])
