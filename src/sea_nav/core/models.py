from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


WaypointType = Literal["start", "waypoint", "destination"]

HazardType = Literal[
    "reef",
    "shallow_water",
    "wreck",
    "rock",
    "restricted_area",
    "military_zone",
    "anchorage_prohibited",
    "fishing_prohibited",
    "speed_limit",
    "traffic_separation",
    "cable_area",
    "pipeline",
]
HazardSeverity = Literal["info", "warning", "danger", "critical"]
HazardSource = Literal["osm", "noaa", "ukho", "user"]
HazardOrigin = Literal["live", "cache", "none"]

AlertType = Literal[
    "waypoint-approaching",
    "waypoint-reached",
    "off-course",
    "destination-reached",
    "low-speed",
    "course-correction",
    "gps-error",
    "permission-denied",
]
AlertSeverity = Literal["info", "warning", "success", "error"]

NavigationPhase = Literal["idle", "navigating", "paused", "stopped", "destination_reached"]

MarinaType = Literal["marina", "harbor", "anchorage", "beach", "port", "yacht_club"]


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

class LatLon(BaseModel):
    model_config = {"frozen": True}

    lat: float
    lon: float


class NamedPoint(BaseModel):
    lat: float
    lon: float
    name: str = ""


class BoundingBox(BaseModel):
    model_config = {"frozen": True}

    north: float
    south: float
    east: float
    west: float

    @classmethod
    def around(cls, points: Iterable, pad_deg: float = 0.0) -> BoundingBox:
        """Box enclosing objects with ``lat``/``lon`` attributes, padded on every side."""
        pts = list(points)
        if not pts:
            raise ValueError("Cannot build a bounding box around zero points")
        lats = [p.lat for p in pts]
        lons = [p.lon for p in pts]
        box = cls(north=max(lats), south=min(lats), east=max(lons), west=min(lons))
        return box.padded(pad_deg) if pad_deg else box

    def padded(self, pad_deg: float) -> BoundingBox:
        return BoundingBox(
            north=self.north + pad_deg,
            south=self.south - pad_deg,
            east=self.east + pad_deg,
            west=self.west - pad_deg,
        )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

class Waypoint(BaseModel):
    id: str
    lat: float
    lon: float
    name: str
    type: WaypointType = "waypoint"
    timestamp: Optional[datetime] = None


class Route(BaseModel):
    id: str
    name: str
    waypoints: List[Waypoint]
    total_distance_nm: float
    estimated_time_hours: float
    average_speed_kt: float
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def start(self) -> Waypoint:
        return self.waypoints[0]

    @property
    def destination(self) -> Waypoint:
        return self.waypoints[-1]


# ---------------------------------------------------------------------------
# Hazards
# ---------------------------------------------------------------------------

class NauticalHazard(BaseModel):
    model_config = {"frozen": True}

    id: str
    type: HazardType
    lat: float
    lon: float
    radius_m: Optional[float] = None
    polygon: Optional[List[LatLon]] = None
    # metres; 0 = awash, -1 = covers and uncovers with the tide
    depth_m: Optional[float] = None
    description: Optional[str] = None
    severity: HazardSeverity
    source: HazardSource = "osm"


class HazardSnapshot(BaseModel):
    hazards: List[NauticalHazard] = []
    origin: HazardOrigin = "live"
    fetched_at: Optional[datetime] = None


class RouteHazard(BaseModel):
    hazard: NauticalHazard
    distance_from_route_m: float
    waypoint_segment: int


class RouteAnalysis(BaseModel):
    is_safe: bool
    hazards: List[RouteHazard] = []
    min_depth_m: Optional[float] = None
    warnings: List[str] = []
    recommendations: List[str] = []
    hazard_data_origin: HazardOrigin = "live"


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

class PositionFix(BaseModel):
    """One reading from the position stream."""

    lat: float
    lon: float
    speed_mps: Optional[float] = None
    heading_deg: Optional[float] = None  # course over ground, when the receiver has one
    timestamp: datetime = Field(default_factory=utcnow)


class NavigationState(BaseModel):
    current_position: LatLon
    heading_deg: float
    speed_kt: float
    next_waypoint: Optional[Waypoint] = None
    distance_to_next_nm: float = 0.0
    bearing_to_next_deg: float = 0.0
    eta_to_next_min: float = 0.0
    progress_pct: float = 0.0


class NavigationAlert(BaseModel):
    type: AlertType
    message: str
    severity: AlertSeverity
    timestamp: datetime = Field(default_factory=utcnow)
    auto_close: bool = False


class HistoryPoint(BaseModel):
    lat: float
    lon: float
    timestamp: datetime
    speed_kt: float


class DeadReckoningEstimate(BaseModel):
    from_lat: float
    from_lon: float
    heading_deg: float
    speed_kt: float
    elapsed_hours: float
    distance_nm: float
    lat: float
    lon: float


class NavigationStatus(BaseModel):
    phase: NavigationPhase
    is_navigating: bool
    route: Optional[Route] = None
    current_waypoint_index: int = 0
    history_length: int = 0


class NavigationConfig(BaseModel):
    waypoint_threshold_nm: float = 0.1
    approach_threshold_nm: float = 0.5
    off_course_threshold_deg: float = 45.0
    low_speed_kt: float = 0.5
    speed_window: int = Field(default=5, ge=1)
    history_size: int = Field(default=100, ge=2)
    enable_voice_alerts: bool = True
    enable_vibration: bool = True

    @classmethod
    def from_settings(cls) -> NavigationConfig:
        from sea_nav.config import settings

        return cls(
            waypoint_threshold_nm=settings.waypoint_threshold_nm,
            approach_threshold_nm=settings.approach_threshold_nm,
            off_course_threshold_deg=settings.off_course_threshold_deg,
            low_speed_kt=settings.low_speed_kt,
            speed_window=settings.speed_window,
            history_size=settings.history_size,
            enable_voice_alerts=settings.enable_voice_alerts,
            enable_vibration=settings.enable_vibration,
        )


# ---------------------------------------------------------------------------
# Coastal facilities
# ---------------------------------------------------------------------------

class MarinaFacilities(BaseModel):
    fuel: bool = False
    water: bool = False
    electricity: bool = False
    wifi: bool = False
    restaurant: bool = False
    shower: bool = False
    laundry: bool = False
    repair: bool = False
    pump_out: bool = False
    security: bool = False


class Marina(BaseModel):
    id: str
    name: str
    lat: float
    lon: float
    type: MarinaType = "marina"
    distance_nm: float = 0.0
    bearing_deg: float = 0.0
    amenities: List[str] = []
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = Field(default=None, description="0..5")
    facilities: MarinaFacilities = Field(default_factory=MarinaFacilities)
    vhf_channel: Optional[str] = None


class CoastSearchOptions(BaseModel):
    radius_nm: float = 25.0
    types: Optional[List[MarinaType]] = None
    amenities: Optional[List[str]] = None
    min_rating: Optional[float] = None
    sort_by: Literal["distance", "rating", "name"] = "distance"
