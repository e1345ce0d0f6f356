"""
Unit tests for the coastal facility directory.
"""

from unittest.mock import Mock

import pytest
import requests

from sea_nav.cache import keys
from sea_nav.core.models import CoastSearchOptions, Marina
from sea_nav.marinas.directory import (
    CoastalDirectory,
    calculate_eta_to_marina,
    determine_type,
    get_favorite_marinas,
    get_navigation_url,
    is_marina_favorited,
    parse_amenities,
    parse_coastal_elements,
    remove_favorite_marina,
    save_favorite_marina,
)

HERE = (41.50, -71.30)

ELEMENTS = {
    "elements": [
        {
            "type": "node",
            "id": 1,
            "lat": 41.52,
            "lon": -71.30,
            "tags": {
                "name": "Harbor Light Marina",
                "leisure": "marina",
                "fuel": "yes",
                "drinking_water": "yes",
                "rating": "4.5",
                "seamark:radio_station:channel": "9",
            },
        },
        {
            "type": "way",
            "id": 2,
            "center": {"lat": 41.60, "lon": -71.30},
            "tags": {"name": "Anchor Beach", "natural": "beach", "shower": "yes"},
        },
        {
            "type": "node",
            "id": 3,
            "lat": 41.51,
            "lon": -71.29,
            "tags": {"leisure": "marina"},
        },
        {
            "type": "node",
            "id": 4,
            "lat": 41.45,
            "lon": -71.30,
            "tags": {"name": "Breakwater Harbour", "harbour": "yes", "internet_access": "wifi"},
        },
    ]
}


def _directory(store, clock, overpass=None, nominatim=None):
    return CoastalDirectory(
        overpass=overpass or Mock(),
        nominatim=nominatim or Mock(),
        store=store,
        clock=clock,
    )


class TestParsing:
    def test_types(self):
        assert determine_type({"harbour": "yes", "leisure": "marina"}) == "harbor"
        assert determine_type({"leisure": "marina"}) == "marina"
        assert determine_type({"natural": "beach"}) == "beach"
        assert determine_type({"harbour": "port"}) == "port"
        assert determine_type({}) == "marina"

    def test_amenities(self):
        assert parse_amenities({"fuel": "yes", "toilets": "yes", "shop": "no"}) == ["Fuel", "Toilets"]

    def test_elements(self):
        """Nodes and way centres parse; unnamed features are skipped."""
        marinas = parse_coastal_elements(ELEMENTS, *HERE)
        by_name = {m.name: m for m in marinas}

        assert set(by_name) == {"Harbor Light Marina", "Anchor Beach", "Breakwater Harbour"}

        marina = by_name["Harbor Light Marina"]
        assert marina.id == "osm-1"
        assert marina.type == "marina"
        assert marina.amenities == ["Fuel", "Water"]
        assert marina.facilities.fuel and marina.facilities.water
        assert marina.rating == 4.5
        assert marina.vhf_channel == "9"
        assert marina.distance_nm == pytest.approx(1.2, abs=0.01)
        assert marina.bearing_deg == pytest.approx(0.0, abs=1e-6)

        beach = by_name["Anchor Beach"]
        assert (beach.lat, beach.lon) == (41.60, -71.30)
        assert beach.type == "beach"

        harbour = by_name["Breakwater Harbour"]
        assert harbour.type == "harbor"
        assert harbour.facilities.wifi is True
        assert harbour.bearing_deg == pytest.approx(180.0)


class TestNearbySearch:
    def test_sorted_by_distance_and_cached(self, store, clock, overpass):
        overpass.coastal.return_value = ELEMENTS
        directory = _directory(store, clock, overpass=overpass)

        marinas = directory.search_nearby_coasts(*HERE)

        assert [m.name for m in marinas] == ["Harbor Light Marina", "Breakwater Harbour", "Anchor Beach"]
        overpass.coastal.assert_called_once_with(41.50, -71.30, pytest.approx(25 * 1852))
        assert store.get(keys.coastal(*HERE)) is not None

    def test_filters_and_sorting(self, store, clock, overpass):
        overpass.coastal.return_value = ELEMENTS
        directory = _directory(store, clock, overpass=overpass)

        by_name = directory.search_nearby_coasts(*HERE, CoastSearchOptions(sort_by="name"))
        assert [m.name for m in by_name] == ["Anchor Beach", "Breakwater Harbour", "Harbor Light Marina"]

        rated = directory.search_nearby_coasts(*HERE, CoastSearchOptions(min_rating=4))
        assert [m.name for m in rated] == ["Harbor Light Marina"]

        showers = directory.search_nearby_coasts(*HERE, CoastSearchOptions(amenities=["Shower", "Laundry"]))
        assert [m.name for m in showers] == ["Anchor Beach"]

        beaches = directory.search_nearby_coasts(*HERE, CoastSearchOptions(types=["beach"]))
        assert [m.name for m in beaches] == ["Anchor Beach"]

        by_rating = directory.search_nearby_coasts(*HERE, CoastSearchOptions(sort_by="rating"))
        assert by_rating[0].name == "Harbor Light Marina"

    def test_failure_serves_fresh_cache(self, store, clock, overpass):
        overpass.coastal.return_value = ELEMENTS
        directory = _directory(store, clock, overpass=overpass)
        directory.search_nearby_coasts(*HERE)

        overpass.coastal.side_effect = requests.ConnectionError("offline")
        clock.advance(23 * 3600)
        assert len(directory.search_nearby_coasts(*HERE)) == 3

        clock.advance(3600)
        assert directory.search_nearby_coasts(*HERE) == []

    def test_fallback_applies_current_options(self, store, clock, overpass):
        """A narrow query must not leave a narrowed cache behind."""
        overpass.coastal.return_value = ELEMENTS
        directory = _directory(store, clock, overpass=overpass)
        beaches = directory.search_nearby_coasts(*HERE, CoastSearchOptions(types=["beach"]))
        assert [m.name for m in beaches] == ["Anchor Beach"]

        overpass.coastal.side_effect = requests.ConnectionError("offline")
        everything = directory.search_nearby_coasts(*HERE)
        assert [m.name for m in everything] == ["Harbor Light Marina", "Breakwater Harbour", "Anchor Beach"]

        harbours = directory.search_nearby_coasts(*HERE, CoastSearchOptions(types=["harbor"]))
        assert [m.name for m in harbours] == ["Breakwater Harbour"]

    def test_failure_without_cache(self, store, clock, overpass):
        overpass.coastal.side_effect = requests.Timeout("slow")
        assert _directory(store, clock, overpass=overpass).search_nearby_coasts(*HERE) == []

    def test_invalid_position(self, store, clock):
        with pytest.raises(ValueError):
            _directory(store, clock).search_nearby_coasts(120.0, 0.0)


class TestNameSearch:
    def test_merges_and_deduplicates(self, store, clock):
        nominatim = Mock()
        nominatim.search.side_effect = [
            [{"place_id": 7, "lat": "41.55", "lon": "-71.30", "display_name": "North Marina"}],
            [{"place_id": 8, "lat": "41.51", "lon": "-71.30", "display_name": "Sandy Beach"}],
            [{"place_id": 7, "lat": "41.55", "lon": "-71.30", "display_name": "North Marina"}, {"place_id": 9}],
            requests.ConnectionError("offline"),
        ]
        directory = _directory(store, clock, nominatim=nominatim)

        results = directory.search_marinas_by_name("Newport", *HERE)

        assert [m.id for m in results] == ["nominatim-8", "nominatim-7"]
        assert results[0].type == "beach"
        assert results[1].type == "marina"
        queries = [c.args[0] for c in nominatim.search.call_args_list]
        assert queries == ["Newport marina", "Newport beach", "Newport coast", "Newport harbour"]

    def test_without_position(self, store, clock):
        nominatim = Mock()
        nominatim.search.return_value = [
            {"place_id": 1, "lat": "10", "lon": "10", "display_name": "Somewhere"},
        ]
        results = _directory(store, clock, nominatim=nominatim).search_marinas_by_name("x")

        assert len(results) == 1
        assert results[0].distance_nm == 0.0


class TestFavorites:
    def test_save_list_remove(self, store):
        m1 = Marina(id="osm-1", name="One", lat=1, lon=1)
        m2 = Marina(id="osm-2", name="Two", lat=2, lon=2)

        save_favorite_marina(m1, store)
        save_favorite_marina(m1, store)
        save_favorite_marina(m2, store)

        assert [m.id for m in get_favorite_marinas(store)] == ["osm-1", "osm-2"]
        assert is_marina_favorited("osm-2", store)

        remove_favorite_marina("osm-2", store)
        assert not is_marina_favorited("osm-2", store)
        assert [m.id for m in get_favorite_marinas(store)] == ["osm-1"]

    def test_empty(self, store):
        assert get_favorite_marinas(store) == []


class TestHelpers:
    def test_navigation_urls(self):
        marina = Marina(id="x", name="Harbor Light", lat=41.5, lon=-71.3)

        assert get_navigation_url(marina) == (
            "https://www.google.com/maps/dir/?api=1&destination=41.5,-71.3"
            "&destination_place_id=Harbor%20Light&travelmode=driving"
        )
        assert get_navigation_url(marina, "waze") == "https://www.waze.com/ul?ll=41.5,-71.3&navigate=yes&zoom=17"
        assert get_navigation_url(marina, "apple") == "https://maps.apple.com/?daddr=41.5,-71.3&dirflg=d"

    def test_eta(self):
        marina = Marina(id="x", name="X", lat=0, lon=0, distance_nm=10.0)
        assert calculate_eta_to_marina(marina, 5.0) == pytest.approx(120.0)
        assert calculate_eta_to_marina(marina, 0.0) == 0.0
