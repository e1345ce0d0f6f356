"""Coastal facility directory: nearby marinas, harbours and beaches from OSM.

Area searches go to Overpass and are cached per rounded position for 24 h;
name searches go to Nominatim and are not cached.  Favourites live in the
key-value store.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from sea_nav.cache import keys
from sea_nav.cache.store import KeyValueStore, cache_get_json, cache_set_json, get_store
from sea_nav.core.geodesy import bearing_deg, distance_nm, nm_to_m, validate_coordinates
from sea_nav.core.models import CoastSearchOptions, Marina, MarinaFacilities, MarinaType
from sea_nav.core.route import calculate_eta_min
from sea_nav.providers.nominatim import NominatimClient
from sea_nav.providers.overpass import OverpassClient

log = logging.getLogger(__name__)


NavigationApp = Literal["google", "waze", "apple"]

# Nominatim query suffix -> facility type
_NAME_SEARCH_TYPES: Dict[str, MarinaType] = {
    "marina": "marina",
    "beach": "beach",
    "coast": "beach",
    "harbour": "harbor",
}

# (tag, label) pairs that count as an amenity when tagged "yes"
_AMENITY_TAGS = [
    ("fuel", "Fuel"),
    ("drinking_water", "Water"),
    ("electricity", "Electricity"),
    ("wifi", "WiFi"),
    ("restaurant", "Restaurant"),
    ("shower", "Shower"),
    ("laundry", "Laundry"),
    ("repair", "Repair"),
    ("toilets", "Toilets"),
    ("shop", "Shop"),
]


# ---------------------------------------------------------------------------
# Tag parsing
# ---------------------------------------------------------------------------

def determine_type(tags: Dict[str, Any]) -> MarinaType:
    if tags.get("harbour") == "yes":
        return "harbor"
    if tags.get("leisure") == "marina":
        return "marina"
    if tags.get("natural") == "beach":
        return "beach"
    if tags.get("harbour") == "port":
        return "port"
    return "marina"


def parse_amenities(tags: Dict[str, Any]) -> List[str]:
    return [label for tag, label in _AMENITY_TAGS if tags.get(tag) == "yes"]


def parse_facilities(tags: Dict[str, Any]) -> MarinaFacilities:
    def yes(tag: str) -> bool:
        return tags.get(tag) == "yes"

    return MarinaFacilities(
        fuel=yes("fuel"),
        water=yes("drinking_water"),
        electricity=yes("electricity"),
        wifi=yes("wifi") or tags.get("internet_access") == "wifi",
        restaurant=yes("restaurant") or tags.get("amenity") == "restaurant",
        shower=yes("shower"),
        laundry=yes("laundry"),
        repair=yes("repair"),
        pump_out=yes("pump_out"),
        security=yes("security"),
    )


def _rating(tags: Dict[str, Any]) -> Optional[float]:
    raw = tags.get("rating") or tags.get("stars")
    if raw is None:
        return None
    try:
        return max(0.0, min(5.0, float(raw)))
    except ValueError:
        return None


def parse_coastal_elements(data: Dict[str, Any], from_lat: float, from_lon: float) -> List[Marina]:
    """
    Overpass ``out center`` elements -> marinas relative to (from_lat, from_lon).

    Nodes carry ``lat``/``lon``; ways carry a ``center``.  Unnamed features
    are skipped.
    """
    marinas: List[Marina] = []

    for el in data.get("elements") or []:
        center = el.get("center") or {}
        lat = el.get("lat", center.get("lat"))
        lon = el.get("lon", center.get("lon"))
        if lat is None or lon is None:
            continue

        tags = el.get("tags") or {}
        name = tags.get("name")
        if not name:
            continue

        try:
            marinas.append(
                Marina(
                    id=f"osm-{el.get('id')}",
                    name=name,
                    lat=lat,
                    lon=lon,
                    type=determine_type(tags),
                    distance_nm=distance_nm(from_lat, from_lon, lat, lon),
                    bearing_deg=bearing_deg(from_lat, from_lon, lat, lon),
                    amenities=parse_amenities(tags),
                    phone=tags.get("phone"),
                    website=tags.get("website"),
                    email=tags.get("email"),
                    description=tags.get("description"),
                    rating=_rating(tags),
                    facilities=parse_facilities(tags),
                    vhf_channel=tags.get("seamark:radio_station:channel"),
                )
            )
        except (TypeError, ValidationError) as exc:
            log.debug("Skipping malformed coastal element %s: %s", el.get("id"), exc)

    return marinas


def filter_and_sort(marinas: List[Marina], options: CoastSearchOptions) -> List[Marina]:
    out = list(marinas)

    if options.types:
        out = [m for m in out if m.type in options.types]
    if options.min_rating:
        out = [m for m in out if m.rating is not None and m.rating >= options.min_rating]
    if options.amenities:
        wanted = set(options.amenities)
        out = [m for m in out if wanted.intersection(m.amenities)]

    if options.sort_by == "rating":
        out.sort(key=lambda m: m.rating or 0.0, reverse=True)
    elif options.sort_by == "name":
        out.sort(key=lambda m: m.name.casefold())
    else:
        out.sort(key=lambda m: m.distance_nm)
    return out


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------

class CoastalDirectory:
    def __init__(
        self,
        overpass: Optional[OverpassClient] = None,
        nominatim: Optional[NominatimClient] = None,
        store: Optional[KeyValueStore] = None,
        max_age_s: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        from sea_nav.config import settings

        self.overpass = overpass or OverpassClient()
        self.nominatim = nominatim or NominatimClient()
        self.store = store if store is not None else get_store()
        self.max_age_s = max_age_s if max_age_s is not None else settings.ttl_marinas
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ── Area search ──────────────────────────────────────────────────────

    def search_nearby_coasts(
        self, lat: float, lon: float, options: Optional[CoastSearchOptions] = None
    ) -> List[Marina]:
        validate_coordinates(lat, lon)
        options = options or CoastSearchOptions()

        try:
            data = self.overpass.coastal(lat, lon, nm_to_m(options.radius_nm))
            marinas = parse_coastal_elements(data, lat, lon)
        except (requests.RequestException, ValueError) as exc:
            log.warning("Error searching coasts near (%.4f, %.4f): %s", lat, lon, exc)
            cached = self.cached_marinas(lat, lon)
            return filter_and_sort(cached, options) if cached else []

        # unfiltered, so a later fallback can apply its own options
        self._cache(lat, lon, marinas)
        return filter_and_sort(marinas, options)

    def _cache(self, lat: float, lon: float, marinas: List[Marina]) -> None:
        cache_set_json(
            self.store,
            keys.coastal(lat, lon),
            {
                "timestamp": self.clock().isoformat(),
                "marinas": [m.model_dump(mode="json") for m in marinas],
            },
            ttl=self.max_age_s,
        )

    def cached_marinas(self, lat: float, lon: float) -> Optional[List[Marina]]:
        """Results cached for this rounded position within the freshness window, else ``None``."""
        cached = cache_get_json(self.store, keys.coastal(lat, lon))
        if not isinstance(cached, dict):
            return None
        try:
            ts = datetime.fromisoformat(cached["timestamp"])
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            if (self.clock() - ts).total_seconds() >= self.max_age_s:
                return None
            return [Marina.model_validate(m) for m in cached.get("marinas", [])]
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Error parsing cached coastal data: %s", exc)
            return None

    # ── Name search ──────────────────────────────────────────────────────

    def search_marinas_by_name(
        self, query: str, lat: Optional[float] = None, lon: Optional[float] = None
    ) -> List[Marina]:
        has_position = lat is not None and lon is not None
        results: Dict[str, Marina] = {}

        for suffix, mtype in _NAME_SEARCH_TYPES.items():
            try:
                items = self.nominatim.search(f"{query} {suffix}")
            except (requests.RequestException, ValueError) as exc:
                log.warning("Nominatim search %r failed: %s", f"{query} {suffix}", exc)
                continue

            for item in items:
                try:
                    item_lat = float(item["lat"])
                    item_lon = float(item["lon"])
                except (KeyError, TypeError, ValueError):
                    continue
                mid = f"nominatim-{item.get('place_id')}"
                if mid in results:
                    continue
                results[mid] = Marina(
                    id=mid,
                    name=item.get("display_name") or query,
                    lat=item_lat,
                    lon=item_lon,
                    type=mtype,
                    distance_nm=distance_nm(lat, lon, item_lat, item_lon) if has_position else 0.0,
                    bearing_deg=bearing_deg(lat, lon, item_lat, item_lon) if has_position else 0.0,
                )

        return sorted(results.values(), key=lambda m: m.distance_nm)

    # ── Favourites ───────────────────────────────────────────────────────

    def get_favorite_marinas(self) -> List[Marina]:
        raw = cache_get_json(self.store, keys.favorite_marinas())
        if not isinstance(raw, list):
            return []
        out: List[Marina] = []
        for item in raw:
            try:
                out.append(Marina.model_validate(item))
            except ValidationError as exc:
                log.warning("Skipping unreadable favourite marina: %s", exc)
        return out

    def _write_favorites(self, marinas: List[Marina]) -> None:
        cache_set_json(self.store, keys.favorite_marinas(), [m.model_dump(mode="json") for m in marinas])

    def save_favorite_marina(self, marina: Marina) -> None:
        favorites = self.get_favorite_marinas()
        if any(m.id == marina.id for m in favorites):
            return
        favorites.append(marina)
        self._write_favorites(favorites)

    def remove_favorite_marina(self, marina_id: str) -> None:
        self._write_favorites([m for m in self.get_favorite_marinas() if m.id != marina_id])

    def is_marina_favorited(self, marina_id: str) -> bool:
        return any(m.id == marina_id for m in self.get_favorite_marinas())


# ---------------------------------------------------------------------------
# Stateless helpers
# ---------------------------------------------------------------------------

def get_navigation_url(marina: Marina, app: NavigationApp = "google") -> str:
    """Directions deep link for an external maps app."""
    lat, lon = marina.lat, marina.lon
    if app == "waze":
        return f"https://www.waze.com/ul?ll={lat},{lon}&navigate=yes&zoom=17"
    if app == "apple":
        return f"https://maps.apple.com/?daddr={lat},{lon}&dirflg=d"
    return (
        f"https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"
        f"&destination_place_id={quote(marina.name, safe='')}&travelmode=driving"
    )


def calculate_eta_to_marina(marina: Marina, speed_kt: float) -> float:
    """Minutes to the marina at ``speed_kt``; 0 when not moving."""
    return calculate_eta_min(marina.distance_nm, speed_kt)


# Module-level conveniences over a default directory

def search_nearby_coasts(
    lat: float,
    lon: float,
    options: Optional[CoastSearchOptions] = None,
    directory: Optional[CoastalDirectory] = None,
) -> List[Marina]:
    return (directory or CoastalDirectory()).search_nearby_coasts(lat, lon, options)


def search_marinas_by_name(
    query: str,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    directory: Optional[CoastalDirectory] = None,
) -> List[Marina]:
    return (directory or CoastalDirectory()).search_marinas_by_name(query, lat, lon)


def save_favorite_marina(marina: Marina, store: Optional[KeyValueStore] = None) -> None:
    CoastalDirectory(store=store).save_favorite_marina(marina)


def get_favorite_marinas(store: Optional[KeyValueStore] = None) -> List[Marina]:
    return CoastalDirectory(store=store).get_favorite_marinas()


def remove_favorite_marina(marina_id: str, store: Optional[KeyValueStore] = None) -> None:
    CoastalDirectory(store=store).remove_favorite_marina(marina_id)


def is_marina_favorited(marina_id: str, store: Optional[KeyValueStore] = None) -> bool:
    return CoastalDirectory(store=store).is_marina_favorited(marina_id)
