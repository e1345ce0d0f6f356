"""Seamark hazard catalog: Overpass fetch, classification, offline snapshots.

Seamark data changes slowly, so successful lookups are kept for 7 days and
served when the feature service is unreachable.  An empty result after a
failed fetch means "unknown", never "clear"; callers get that distinction
through ``HazardSnapshot.origin``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import ValidationError

from sea_nav.cache import keys
from sea_nav.cache.store import KeyValueStore, cache_get_json, cache_set_json, get_store
from sea_nav.core.models import BoundingBox, HazardSnapshot, LatLon, NauticalHazard
from sea_nav.providers.overpass import OverpassClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeamarkClass:
    type: str
    severity: str
    radius_m: float
    description: str


_CLASSIFICATIONS: Dict[str, SeamarkClass] = {
    "rock": SeamarkClass("rock", "danger", 50, "Submerged rock - Navigation hazard"),
    "reef": SeamarkClass("reef", "danger", 100, "Coral reef - Navigation hazard"),
    "restricted_area": SeamarkClass("restricted_area", "critical", 500, "Restricted area - Entry prohibited"),
    "military_area": SeamarkClass("military_zone", "critical", 1000, "Military zone - Entry strictly prohibited"),
    "anchorage": SeamarkClass("anchorage_prohibited", "warning", 200, "Anchorage restricted or prohibited"),
    "separation_zone": SeamarkClass(
        "traffic_separation", "warning", 200, "Traffic separation zone - Follow designated lanes"
    ),
    "cable_submarine": SeamarkClass("cable_area", "warning", 100, "Submarine cable - Anchoring prohibited"),
    "pipeline_submarine": SeamarkClass("pipeline", "warning", 100, "Submarine pipeline - Anchoring prohibited"),
}

_UNKNOWN = SeamarkClass("restricted_area", "warning", 100, "Marine hazard")


def classify_seamark(seamark_type: str, tags: Dict[str, Any]) -> SeamarkClass:
    """Map an OSM ``seamark:type`` to (hazard type, severity, radius, description)."""
    if seamark_type == "wreck":
        dangerous = tags.get("seamark:wreck:category") == "dangerous"
        return SeamarkClass(
            "wreck",
            "danger" if dangerous else "warning",
            100,
            "Shipwreck - Submerged or partially submerged",
        )
    return _CLASSIFICATIONS.get(seamark_type, _UNKNOWN)


def parse_depth(tags: Dict[str, Any]) -> Optional[float]:
    """
    Depth hint from tags, metres.

    An explicit ``seamark:depth`` wins; otherwise ``awash`` -> 0 and
    ``covers`` (covers and uncovers with the tide) -> -1.
    """
    raw = tags.get("seamark:depth")
    if raw is not None:
        try:
            return float(str(raw).strip())
        except ValueError:
            log.debug("Ignoring unparseable seamark:depth %r", raw)

    level = tags.get("seamark:rock:water_level")
    if level == "awash":
        return 0.0
    if level == "covers":
        return -1.0
    return None


def parse_seamark_elements(data: Dict[str, Any]) -> List[NauticalHazard]:
    """Turn an Overpass ``elements`` document into hazards; untagged elements are skipped."""
    hazards: List[NauticalHazard] = []

    for el in data.get("elements") or []:
        tags = el.get("tags") or {}
        seamark_type = tags.get("seamark:type")
        if not seamark_type:
            continue

        cls = classify_seamark(seamark_type, tags)
        description = tags.get("seamark:name") or tags.get("name") or cls.description
        common = {
            "id": f"osm-{el.get('id')}",
            "type": cls.type,
            "depth_m": parse_depth(tags),
            "description": description,
            "severity": cls.severity,
            "source": "osm",
        }

        try:
            if el.get("type") == "node" and el.get("lat") is not None and el.get("lon") is not None:
                hazards.append(
                    NauticalHazard(lat=el["lat"], lon=el["lon"], radius_m=cls.radius_m, **common)
                )
            elif el.get("type") == "way" and el.get("geometry"):
                polygon = [LatLon(lat=p["lat"], lon=p["lon"]) for p in el["geometry"]]
                center_lat = sum(p.lat for p in polygon) / len(polygon)
                center_lon = sum(p.lon for p in polygon) / len(polygon)
                hazards.append(
                    NauticalHazard(lat=center_lat, lon=center_lon, polygon=polygon, **common)
                )
        except (KeyError, TypeError, ValidationError) as exc:
            log.debug("Skipping malformed seamark element %s: %s", el.get("id"), exc)

    return hazards


def get_depth_at_location(lat: float, lon: float) -> Optional[float]:
    """Charted depth lookup.  No bathymetric source is integrated, so always ``None``."""
    log.warning("Depth data not available at (%.4f, %.4f) - requires bathymetric data source", lat, lon)
    return None


class HazardCatalog:
    """Live seamark lookups with a 7-day offline snapshot per query box."""

    def __init__(
        self,
        client: Optional[OverpassClient] = None,
        store: Optional[KeyValueStore] = None,
        max_age_s: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        from sea_nav.config import settings

        self.client = client or OverpassClient()
        self.store = store if store is not None else get_store()
        self.max_age_s = max_age_s if max_age_s is not None else settings.ttl_hazards
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------

    def _cache(self, bbox: BoundingBox, hazards: List[NauticalHazard], fetched_at: datetime) -> None:
        cache_set_json(
            self.store,
            keys.nautical_hazards(bbox.south, bbox.west),
            {
                "timestamp": fetched_at.isoformat(),
                "bbox": bbox.model_dump(),
                "hazards": [h.model_dump(mode="json") for h in hazards],
            },
            ttl=self.max_age_s,
        )

    def cached_snapshot(self, bbox: BoundingBox) -> Optional[HazardSnapshot]:
        """Fresh stored snapshot for this box's key, or ``None``."""
        cached = cache_get_json(self.store, keys.nautical_hazards(bbox.south, bbox.west))
        if not isinstance(cached, dict):
            return None
        try:
            fetched_at = datetime.fromisoformat(cached["timestamp"])
            if fetched_at.tzinfo is None:
                fetched_at = fetched_at.replace(tzinfo=timezone.utc)
            age_s = (self.clock() - fetched_at).total_seconds()
            if age_s >= self.max_age_s:
                log.info("Cached hazards for %s are stale (%.1f d old)", bbox, age_s / 86400)
                return None
            hazards = [NauticalHazard.model_validate(h) for h in cached.get("hazards", [])]
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Error parsing cached nautical data: %s", exc)
            return None
        return HazardSnapshot(hazards=hazards, origin="cache", fetched_at=fetched_at)

    def lookup(self, bbox: BoundingBox) -> HazardSnapshot:
        """Live hazards for ``bbox``; falls back to a fresh snapshot, then to nothing."""
        try:
            data = self.client.seamarks(bbox)
            hazards = parse_seamark_elements(data)
        except (requests.RequestException, ValueError) as exc:
            log.warning("Error fetching nautical hazards: %s", exc)
            snapshot = self.cached_snapshot(bbox)
            if snapshot is not None:
                log.info("Serving %d cached hazard(s) from %s", len(snapshot.hazards), snapshot.fetched_at)
                return snapshot
            return HazardSnapshot(hazards=[], origin="none")

        now = self.clock()
        self._cache(bbox, hazards, now)
        return HazardSnapshot(hazards=hazards, origin="live", fetched_at=now)

    def fetch_nautical_hazards(self, bbox: BoundingBox) -> List[NauticalHazard]:
        return self.lookup(bbox).hazards


def fetch_nautical_hazards(bbox: BoundingBox, catalog: Optional[HazardCatalog] = None) -> List[NauticalHazard]:
    return (catalog or HazardCatalog()).fetch_nautical_hazards(bbox)
