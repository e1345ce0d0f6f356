"""Route safety analysis against seamark hazards.

``is_safe`` and ``requires_rerouting`` are the load-bearing verdicts: a
critical hazard inside the clearance buffer, or a charted depth shallower
than draft + 1 m, always makes a route unsafe.
"""
from __future__ import annotations

import logging
from math import sqrt
from typing import Any, List, Optional, Sequence

from shapely.geometry import LineString, Point, Polygon

from sea_nav.core.geodesy import (
    distance_from_line_segment_m,
    lat_lon_of,
    m_to_deg,
    to_local_xy,
    validate_coordinates,
)
from sea_nav.core.models import (
    BoundingBox,
    LatLon,
    NamedPoint,
    NauticalHazard,
    RouteAnalysis,
    RouteHazard,
)
from sea_nav.hazards.catalog import HazardCatalog

log = logging.getLogger(__name__)


BBOX_PAD_DEG = 0.1
DEFAULT_HAZARD_RADIUS_M = 100.0
DEPTH_MARGIN_M = 1.0
ABSOLUTE_MIN_DEPTH_M = 1.0
AVOIDANCE_SAFETY_FACTOR = 1.5


def _effective_radius(hazard: NauticalHazard) -> float:
    return hazard.radius_m if hazard.radius_m else DEFAULT_HAZARD_RADIUS_M


def _hazard_geometry(hazard: NauticalHazard):
    """Outline of an area/line hazard in the local metric plane, or ``None``."""
    if not hazard.polygon or len(hazard.polygon) < 2:
        return None
    coords = [to_local_xy(p.lat, p.lon) for p in hazard.polygon]
    closed = len(coords) >= 4 and coords[0] == coords[-1]
    if closed:
        geom = Polygon(coords)
        if geom.is_valid:
            return geom
    return LineString(coords)


def _leg_distance_m(hazard: NauticalHazard, start: LatLon, end: LatLon) -> float:
    """Clearance from the hazard to the leg: centre distance, tightened by its outline."""
    dist = distance_from_line_segment_m(hazard, start, end)

    outline = _hazard_geometry(hazard)
    if outline is not None:
        a = to_local_xy(start.lat, start.lon)
        b = to_local_xy(end.lat, end.lon)
        leg = LineString([a, b]) if a != b else Point(a)
        dist = min(dist, float(leg.distance(outline)))
    return dist


def _label(hazard: NauticalHazard) -> str:
    return hazard.description or hazard.type


def _leg_warning(hazard: NauticalHazard, dist_m: float, seg: int) -> Optional[str]:
    d = round(dist_m)
    if hazard.severity == "critical":
        return (
            f"CRITICAL: Route passes {d}m from {_label(hazard)} "
            f"between waypoint {seg + 1} and {seg + 2}. REROUTE REQUIRED!"
        )
    if hazard.severity == "danger":
        return (
            f"DANGER: Route passes {d}m from {_label(hazard)} "
            f"between waypoint {seg + 1} and {seg + 2}. Exercise extreme caution!"
        )
    if hazard.severity == "warning":
        return f"Warning: {_label(hazard)} detected {d}m from route (segment {seg + 1}-{seg + 2})"
    return None


def analyze_route_hazards(
    waypoints: Sequence[Any],
    vessel_draft_m: float = 2.0,
    safety_margin_m: float = 500.0,
    catalog: Optional[HazardCatalog] = None,
) -> RouteAnalysis:
    """
    Score a waypoint sequence against the hazards around it.

    A hazard is attached to leg ``i`` when its clearance from that leg is
    under ``safety_margin_m`` plus the hazard radius (100 m when unknown).
    ``min_depth_m`` is the shallowest depth hint among all hazards fetched
    for the route area.
    """
    if len(waypoints) < 2:
        raise ValueError(f"A route needs at least 2 waypoints, got {len(waypoints)}")

    points: List[LatLon] = []
    for wp in waypoints:
        lat, lon = lat_lon_of(wp)
        validate_coordinates(lat, lon)
        points.append(LatLon(lat=lat, lon=lon))

    catalog = catalog or HazardCatalog()
    bbox = BoundingBox.around(points, pad_deg=BBOX_PAD_DEG)
    snapshot = catalog.lookup(bbox)
    hazards = snapshot.hazards

    route_hazards: List[RouteHazard] = []
    warnings: List[str] = []
    recommendations: List[str] = []

    for i, (start, end) in enumerate(zip(points, points[1:])):
        for hazard in hazards:
            dist = _leg_distance_m(hazard, start, end)
            if dist < safety_margin_m + _effective_radius(hazard):
                route_hazards.append(
                    RouteHazard(hazard=hazard, distance_from_route_m=dist, waypoint_segment=i)
                )
                msg = _leg_warning(hazard, dist, i)
                if msg:
                    warnings.append(msg)

    depths = [h.depth_m for h in hazards if h.depth_m is not None]
    min_depth = min(depths) if depths else None

    depth_unsafe = min_depth is not None and min_depth < vessel_draft_m + DEPTH_MARGIN_M
    if depth_unsafe:
        warnings.append(
            f"SHALLOW WATER: Minimum depth {min_depth:.1f}m detected. "
            f"Vessel draft {vessel_draft_m:.1f}m + {DEPTH_MARGIN_M:.0f}m safety margin required. UNSAFE!"
        )

    if snapshot.origin == "none":
        warnings.append(
            "HAZARD DATA UNAVAILABLE: no live or cached seamark data for this area. "
            "Absence of reported hazards does not mean the route is clear."
        )
    elif snapshot.origin == "cache":
        stamp = snapshot.fetched_at.strftime("%Y-%m-%d %H:%M UTC") if snapshot.fetched_at else "unknown time"
        warnings.append(f"Using cached hazard data from {stamp}; live chart service unreachable.")

    critical_count = sum(1 for rh in route_hazards if rh.hazard.severity == "critical")

    if not route_hazards:
        recommendations.append("No major hazards detected along route")
    else:
        recommendations.append(
            f"{len(route_hazards)} hazard(s) detected. Review and adjust route as needed."
        )
        if critical_count > 0:
            recommendations.append(
                f"{critical_count} CRITICAL hazard(s) detected. Route is UNSAFE - must reroute!"
            )

    if snapshot.origin != "live":
        recommendations.append("Hazard data may be incomplete - treat this analysis as uncertain")

    recommendations.append("Always verify route with official nautical charts before navigation")
    recommendations.append("Monitor VHF radio for local notices to mariners")

    is_safe = critical_count == 0 and not depth_unsafe

    log.info(
        "Route analysis: %d leg(s), %d hazard(s) in area, %d attached, safe=%s, data=%s",
        len(points) - 1, len(hazards), len(route_hazards), is_safe, snapshot.origin,
    )

    return RouteAnalysis(
        is_safe=is_safe,
        hazards=route_hazards,
        min_depth_m=min_depth,
        warnings=warnings,
        recommendations=recommendations,
        hazard_data_origin=snapshot.origin,
    )


def suggest_hazard_avoidance(
    hazard: NauticalHazard,
    leg_start: Any,
    leg_end: Any,
    safety_margin_m: float = 500.0,
) -> Optional[NamedPoint]:
    """
    One-shot detour point: the leg midpoint pushed sideways by
    1.5 × (hazard radius + margin).

    Not a path planner; the detour may cross other hazards, so re-run
    ``analyze_route_hazards`` after splicing it in.  ``None`` for a
    zero-length leg.
    """
    s_lat, s_lon = lat_lon_of(leg_start)
    e_lat, e_lon = lat_lon_of(leg_end)

    dx = e_lon - s_lon
    dy = e_lat - s_lat
    length = sqrt(dx * dx + dy * dy)
    if length == 0:
        return None

    # unit vector perpendicular to the leg (left of travel)
    perp_x = -dy / length
    perp_y = dx / length

    offset_deg = m_to_deg(_effective_radius(hazard) + safety_margin_m) * AVOIDANCE_SAFETY_FACTOR

    return NamedPoint(
        lat=(s_lat + e_lat) / 2 + perp_y * offset_deg,
        lon=(s_lon + e_lon) / 2 + perp_x * offset_deg,
        name=f"Avoid {hazard.type}",
    )


def requires_rerouting(analysis: RouteAnalysis) -> bool:
    return (
        not analysis.is_safe
        or any(rh.hazard.severity == "critical" for rh in analysis.hazards)
        or (analysis.min_depth_m is not None and analysis.min_depth_m < ABSOLUTE_MIN_DEPTH_M)
    )
