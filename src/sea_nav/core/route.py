"""Route building: waypoint sequences, aggregate distance/ETA, navigation snapshots."""
from __future__ import annotations

import random
import string
import time
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from sea_nav.core.geodesy import (
    bearing_deg,
    distance_nm,
    lat_lon_of,
    validate_coordinates,
)
from sea_nav.core.models import LatLon, NavigationState, Route, Waypoint


_ID_ALPHABET = string.ascii_lowercase + string.digits


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def generate_id() -> str:
    """Millisecond timestamp plus a random base-36 suffix (best-effort unique)."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


def _named_point(p: Any) -> Tuple[float, float, str]:
    lat, lon = lat_lon_of(p)
    validate_coordinates(lat, lon)
    if isinstance(p, Mapping):
        name = p.get("name")
    else:
        name = getattr(p, "name", None)
    return lat, lon, str(name) if name else f"{lat:.4f},{lon:.4f}"


def calculate_route_distance(waypoints: Sequence[Waypoint]) -> float:
    """Sum of great-circle leg distances (nm) over consecutive waypoints."""
    total = 0.0
    for a, b in zip(waypoints, waypoints[1:]):
        total += distance_nm(a.lat, a.lon, b.lat, b.lon)
    return total


def calculate_eta_min(dist_nm: float, speed_kt: float) -> float:
    """Minutes to cover ``dist_nm`` at ``speed_kt``; 0 when not moving."""
    if speed_kt == 0:
        return 0.0
    return (dist_nm / speed_kt) * 60.0


def _with_waypoints(route: Route, waypoints: List[Waypoint]) -> Route:
    total = calculate_route_distance(waypoints)
    return route.model_copy(
        update={
            "waypoints": waypoints,
            "total_distance_nm": total,
            "estimated_time_hours": total / route.average_speed_kt,
        }
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_route(start: Any, destination: Any, average_speed_kt: float = 5.0) -> Route:
    """
    Build a two-waypoint route from ``start`` to ``destination``.

    Both endpoints are mappings or objects with ``lat``, ``lon`` and an
    optional ``name``.
    """
    if average_speed_kt <= 0:
        raise ValueError(f"average_speed_kt must be positive, got {average_speed_kt}")

    s_lat, s_lon, s_name = _named_point(start)
    d_lat, d_lon, d_name = _named_point(destination)

    waypoints = [
        Waypoint(
            id="start",
            lat=s_lat,
            lon=s_lon,
            name=s_name,
            type="start",
            timestamp=datetime.now(timezone.utc),
        ),
        Waypoint(id="destination", lat=d_lat, lon=d_lon, name=d_name, type="destination"),
    ]

    total = calculate_route_distance(waypoints)
    return Route(
        id=generate_id(),
        name=f"{s_name} to {d_name}",
        waypoints=waypoints,
        total_distance_nm=total,
        estimated_time_hours=total / average_speed_kt,
        average_speed_kt=average_speed_kt,
    )


def add_waypoint(route: Route, point: Any, insert_index: Optional[int] = None) -> Route:
    """
    Return a new route with an intermediate waypoint inserted.

    Without ``insert_index`` the waypoint goes immediately before the
    destination.  Indexes that would displace the start or the destination
    are clamped so both stay at the ends.
    """
    lat, lon, name = _named_point(point)
    new_wp = Waypoint(id=generate_id(), lat=lat, lon=lon, name=name, type="waypoint")

    waypoints = list(route.waypoints)
    last = len(waypoints) - 1
    if insert_index is None:
        idx = last
    else:
        idx = max(1, min(int(insert_index), last))
    waypoints.insert(idx, new_wp)

    return _with_waypoints(route, waypoints)


def remove_waypoint(route: Route, waypoint_id: str) -> Route:
    """Return a new route without the intermediate waypoint ``waypoint_id``."""
    for i, wp in enumerate(route.waypoints):
        if wp.id != waypoint_id:
            continue
        if wp.type != "waypoint":
            raise ValueError(f"Cannot remove the {wp.type} waypoint of a route")
        waypoints = route.waypoints[:i] + route.waypoints[i + 1:]
        return _with_waypoints(route, waypoints)
    raise ValueError(f"Waypoint '{waypoint_id}' not found in route {route.id}")


def calculate_navigation_state(
    position: Any,
    route: Route,
    current_waypoint_index: int,
    heading_deg: float = 0.0,
    speed_kt: float = 0.0,
) -> NavigationState:
    """
    Snapshot of progress toward ``route.waypoints[current_waypoint_index + 1]``.

    Progress counts only fully completed legs (those before
    ``current_waypoint_index``); partial progress inside the current leg is
    not included.  Past the last waypoint the snapshot is terminal.
    """
    if current_waypoint_index < 0:
        raise ValueError(f"current_waypoint_index must be >= 0, got {current_waypoint_index}")

    lat, lon = lat_lon_of(position)
    here = LatLon(lat=lat, lon=lon)

    next_idx = current_waypoint_index + 1
    if next_idx >= len(route.waypoints):
        return NavigationState(
            current_position=here,
            heading_deg=heading_deg,
            speed_kt=speed_kt,
            next_waypoint=None,
            distance_to_next_nm=0.0,
            bearing_to_next_deg=0.0,
            eta_to_next_min=0.0,
            progress_pct=100.0,
        )

    nxt = route.waypoints[next_idx]
    dist = distance_nm(lat, lon, nxt.lat, nxt.lon)
    brg = bearing_deg(lat, lon, nxt.lat, nxt.lon)

    total = calculate_route_distance(route.waypoints)
    completed = calculate_route_distance(route.waypoints[: current_waypoint_index + 1])
    progress = (completed / total) * 100.0 if total > 0 else 0.0

    return NavigationState(
        current_position=here,
        heading_deg=heading_deg,
        speed_kt=speed_kt,
        next_waypoint=nxt,
        distance_to_next_nm=dist,
        bearing_to_next_deg=brg,
        eta_to_next_min=calculate_eta_min(dist, speed_kt),
        progress_pct=progress,
    )


def is_near_waypoint(
    lat: float,
    lon: float,
    waypoint_lat: float,
    waypoint_lon: float,
    threshold_nm: float = 0.1,
) -> bool:
    """True when within ``threshold_nm`` (inclusive); 0.1 nm is about 185 m."""
    return distance_nm(lat, lon, waypoint_lat, waypoint_lon) <= threshold_nm
