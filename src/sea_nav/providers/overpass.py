"""Overpass (OpenStreetMap) feature queries: seamark hazards and coastal facilities."""
from __future__ import annotations

from typing import Any, Dict, Optional

from sea_nav.core.models import BoundingBox
from sea_nav.providers.http import HTTPClient


# (element kinds, tag filter) pairs queried for hazards
_SEAMARK_FILTERS = [
    (("node", "way"), '["seamark:type"="rock"]'),
    (("node", "way"), '["seamark:type"="reef"]'),
    (("node", "way"), '["seamark:type"="wreck"]'),
    (("node", "way", "area"), '["seamark:type"="restricted_area"]'),
    (("node", "way"), '["seamark:type"="military_area"]'),
    (("area",), '["military"="danger_area"]'),
    (("node", "area"), '["seamark:type"="anchorage"]'),
    (("way",), '["seamark:type"="separation_zone"]'),
    (("way",), '["seamark:type"="traffic_separation_scheme"]'),
    (("way",), '["seamark:type"="cable_submarine"]'),
    (("way",), '["seamark:type"="pipeline_submarine"]'),
]

_COASTAL_FILTERS = [
    ("node", '["leisure"="marina"]'),
    ("node", '["harbour"="yes"]'),
    ("node", '["natural"="beach"]'),
    ("node", '["natural"="bay"]'),
    ("node", '["place"="bay"]'),
    ("way", '["leisure"="marina"]'),
    ("way", '["natural"="beach"]'),
    ("way", '["natural"="bay"]'),
]


def build_seamark_query(bbox: BoundingBox) -> str:
    box = f"{bbox.south},{bbox.west},{bbox.north},{bbox.east}"
    lines = [
        f"{kind}{tag}({box});"
        for kinds, tag in _SEAMARK_FILTERS
        for kind in kinds
    ]
    # "out geom" inlines way geometry so polygons parse without a second pass
    return (
        f"[out:json][timeout:25][bbox:{box}];\n(\n  "
        + "\n  ".join(lines)
        + "\n);\nout geom;\n"
    )


def build_coastal_query(lat: float, lon: float, radius_m: float) -> str:
    around = f"(around:{radius_m:.0f},{lat},{lon})"
    lines = [f"{kind}{tag}{around};" for kind, tag in _COASTAL_FILTERS]
    return "[out:json][timeout:25];\n(\n  " + "\n  ".join(lines) + "\n);\nout center;\n"


class OverpassClient:
    """POSTs Overpass QL and returns the decoded ``{"elements": [...]}`` document."""

    def __init__(self, url: Optional[str] = None, http: Optional[HTTPClient] = None):
        from sea_nav.config import settings

        self.url = url or settings.overpass_url
        self.http = http or HTTPClient(user_agent=settings.user_agent, timeout_s=settings.http_timeout_s)

    def query(self, ql: str) -> Dict[str, Any]:
        data = self.http.post_json(self.url, data=ql)
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected Overpass payload type: {type(data).__name__}")
        return data

    def seamarks(self, bbox: BoundingBox) -> Dict[str, Any]:
        return self.query(build_seamark_query(bbox))

    def coastal(self, lat: float, lon: float, radius_m: float) -> Dict[str, Any]:
        return self.query(build_coastal_query(lat, lon, radius_m))
