"""Spherical navigation helpers: distance, bearing, leg clearance, conversions."""
from __future__ import annotations

from math import asin, atan2, cos, degrees, isfinite, radians, sin, sqrt
from typing import Any, Mapping, Tuple, Union


EARTH_RADIUS_NM = 3440.065
M_PER_NM = 1852.0
KT_PER_MPS = 1.94384

# Equirectangular approximation: metres per degree of latitude.  Good at leg
# scale (well under 100 km); degrades near the poles and across wide
# longitude spans.
M_PER_DEG = 111_320.0


# ---------------------------------------------------------------------------
# Validation & conversions
# ---------------------------------------------------------------------------

def validate_coordinates(lat: float, lon: float) -> None:
    """Raise ``ValueError`` unless (lat, lon) is a finite WGS-84 position."""
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        raise ValueError(f"Coordinates must be numbers, got ({lat!r}, {lon!r})")
    if not (isfinite(lat_f) and isfinite(lon_f)):
        raise ValueError(f"Coordinates must be finite, got ({lat_f}, {lon_f})")
    if not -90.0 <= lat_f <= 90.0:
        raise ValueError(f"Latitude {lat_f} outside [-90, 90]")
    if not -180.0 <= lon_f <= 180.0:
        raise ValueError(f"Longitude {lon_f} outside [-180, 180]")


def mps_to_kt(v: float) -> float:
    return v * KT_PER_MPS


def nm_to_m(nm: float) -> float:
    return nm * M_PER_NM


def m_to_nm(m: float) -> float:
    return m / M_PER_NM


def m_to_deg(m: float) -> float:
    return m / M_PER_DEG


# ---------------------------------------------------------------------------
# Great-circle
# ---------------------------------------------------------------------------

def distance_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine great-circle distance in nautical miles."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    a = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_NM * 2 * atan2(sqrt(a), sqrt(1 - a))


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing (degrees clockwise from true north), in [0, 360)."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [lat1, lon1, lat2, lon2])
    dlon = lon2r - lon1r
    x = sin(dlon) * cos(lat2r)
    y = cos(lat1r) * sin(lat2r) - sin(lat1r) * cos(lat2r) * cos(dlon)
    brng = (degrees(atan2(x, y)) + 360.0) % 360.0
    # (-tiny + 360) % 360 can round to exactly 360.0
    return 0.0 if brng >= 360.0 else brng


def destination_point(lat: float, lon: float, bearing: float, dist_nm: float) -> Tuple[float, float]:
    """Point reached from (lat, lon) after ``dist_nm`` along initial ``bearing``."""
    delta = dist_nm / EARTH_RADIUS_NM
    theta = radians(bearing)
    lat1 = radians(lat)
    lon1 = radians(lon)
    lat2 = asin(sin(lat1) * cos(delta) + cos(lat1) * sin(delta) * cos(theta))
    lon2 = lon1 + atan2(
        sin(theta) * sin(delta) * cos(lat1),
        cos(delta) - sin(lat1) * sin(lat2),
    )
    lon2_deg = (degrees(lon2) + 540.0) % 360.0 - 180.0
    return degrees(lat2), lon2_deg


def angle_diff_deg(a: float, b: float) -> float:
    """Minimal circular difference in degrees in [0, 180]."""
    d = abs(a - b) % 360.0
    if d > 180.0:
        d = 360.0 - d
    return float(d)


# ---------------------------------------------------------------------------
# Local plane
# ---------------------------------------------------------------------------

def to_local_xy(lat: float, lon: float) -> Tuple[float, float]:
    """Equirectangular metres: x = lon·111320·cos(lat), y = lat·111320."""
    return lon * M_PER_DEG * cos(radians(lat)), lat * M_PER_DEG


def lat_lon_of(p: Union[Mapping[str, float], Any]) -> Tuple[float, float]:
    """(lat, lon) from a mapping or from any object with ``lat``/``lon`` attributes."""
    if isinstance(p, Mapping):
        return float(p["lat"]), float(p["lon"])
    return float(p.lat), float(p.lon)


def distance_from_line_segment_m(point, line_start, line_end) -> float:
    """
    Distance in metres from ``point`` to the closest point of the segment.

    Each argument is a mapping or object with ``lat`` and ``lon``.  The
    projection parameter is clamped to [0, 1], so this is the distance to
    the segment, not to the infinite line through it.
    """
    px, py = to_local_xy(*lat_lon_of(point))
    ax, ay = to_local_xy(*lat_lon_of(line_start))
    bx, by = to_local_xy(*lat_lon_of(line_end))

    dx = bx - ax
    dy = by - ay
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        return sqrt((px - ax) ** 2 + (py - ay) ** 2)

    t = ((px - ax) * dx + (py - ay) * dy) / length_sq
    t = max(0.0, min(1.0, t))

    cx = ax + t * dx
    cy = ay + t * dy
    return sqrt((px - cx) ** 2 + (py - cy) ** 2)


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

_CARDINALS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


def format_distance(nautical_miles: float) -> str:
    if nautical_miles < 0.1:
        return f"{round(nm_to_m(nautical_miles))} m"
    return f"{nautical_miles:.2f} NM"


def format_time(minutes: float) -> str:
    hours, mins = divmod(round(minutes), 60)
    if hours == 0:
        return f"{mins} min"
    return f"{hours}h {mins}m"


def format_bearing(deg: float) -> str:
    idx = round(deg / 45.0) % 8
    return f"{round(deg)}° {_CARDINALS[idx]}"
