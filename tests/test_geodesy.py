"""
Unit tests for the geodesy helpers.

Great-circle distance and bearing, leg clearance in the local plane,
conversions, and display formatting.
"""

import math

import pytest

from sea_nav.core.geodesy import (
    EARTH_RADIUS_NM,
    angle_diff_deg,
    bearing_deg,
    destination_point,
    distance_from_line_segment_m,
    distance_nm,
    format_bearing,
    format_distance,
    format_time,
    m_to_nm,
    mps_to_kt,
    nm_to_m,
    validate_coordinates,
)


class TestDistance:
    """Haversine distance in nautical miles."""

    def test_same_point_is_zero(self):
        """Distance from a point to itself is zero."""
        assert distance_nm(50.1, -4.2, 50.1, -4.2) == 0.0

    def test_one_degree_of_longitude_at_equator(self):
        """One degree along the equator is R * pi / 180 (about 60 NM)."""
        expected = EARTH_RADIUS_NM * math.pi / 180.0
        assert distance_nm(0.0, 0.0, 0.0, 1.0) == pytest.approx(expected, rel=1e-9)
        assert 59.9 < expected < 60.1

    def test_symmetric(self):
        """Swapping the endpoints does not change the distance."""
        d1 = distance_nm(41.0, -71.0, 42.5, -70.1)
        d2 = distance_nm(42.5, -70.1, 41.0, -71.0)
        assert d1 == pytest.approx(d2, rel=1e-12)


class TestBearing:
    """Initial bearing normalised into [0, 360)."""

    @pytest.mark.parametrize(
        "lat2,lon2,expected",
        [(1.0, 0.0, 0.0), (0.0, 1.0, 90.0), (-1.0, 0.0, 180.0), (0.0, -1.0, 270.0)],
    )
    def test_cardinal_directions(self, lat2, lon2, expected):
        """Due N/E/S/W from the origin."""
        assert bearing_deg(0.0, 0.0, lat2, lon2) == pytest.approx(expected, abs=1e-9)

    def test_range(self):
        """Bearings always fall in [0, 360)."""
        for lat2, lon2 in [(10, -0.0000001), (-5, 179), (89, -179), (0, 0)]:
            b = bearing_deg(0.0, 0.0, lat2, lon2)
            assert 0.0 <= b < 360.0


class TestDestinationPoint:
    """Forward projection used by dead reckoning."""

    def test_zero_distance_stays_put(self):
        """No distance travelled means no movement."""
        lat, lon = destination_point(36.5, -75.2, 123.0, 0.0)
        assert lat == pytest.approx(36.5)
        assert lon == pytest.approx(-75.2)

    def test_inverse_of_distance_and_bearing(self):
        """Projecting along the bearing for the distance lands on the target."""
        d = distance_nm(0.0, 0.0, 0.0, 1.0)
        lat, lon = destination_point(0.0, 0.0, 90.0, d)
        assert lat == pytest.approx(0.0, abs=1e-9)
        assert lon == pytest.approx(1.0, abs=1e-9)


class TestAngleDiff:
    """Minimal circular difference."""

    def test_wraps_through_north(self):
        """350 and 10 are 20 degrees apart."""
        assert angle_diff_deg(350.0, 10.0) == pytest.approx(20.0)

    def test_opposite(self):
        """Reciprocal headings differ by 180."""
        assert angle_diff_deg(90.0, 270.0) == pytest.approx(180.0)

    def test_exact_value_kept(self):
        """No rounding at round numbers."""
        assert angle_diff_deg(90.0, 45.0) == 45.0


class TestLineSegmentDistance:
    """Point-to-segment clearance with a clamped projection."""

    def test_point_on_segment(self):
        """A point on the leg has zero clearance."""
        d = distance_from_line_segment_m({"lat": 0, "lon": 0.5}, {"lat": 0, "lon": 0}, {"lat": 0, "lon": 1})
        assert d == pytest.approx(0.0, abs=1e-6)

    def test_perpendicular_offset(self):
        """0.01 degrees north of an equatorial leg is 1113.2 m away."""
        d = distance_from_line_segment_m({"lat": 0.01, "lon": 0.5}, {"lat": 0, "lon": 0}, {"lat": 0, "lon": 1})
        assert d == pytest.approx(1113.2, rel=1e-6)

    def test_clamped_beyond_end(self):
        """Past the end of the leg the distance is measured to the endpoint."""
        d = distance_from_line_segment_m({"lat": 0, "lon": 1.01}, {"lat": 0, "lon": 0}, {"lat": 0, "lon": 1})
        assert d == pytest.approx(1113.2, rel=1e-6)

    def test_zero_length_segment(self):
        """A degenerate leg falls back to point distance."""
        a = {"lat": 0, "lon": 0}
        d = distance_from_line_segment_m({"lat": 0.01, "lon": 0}, a, a)
        assert d == pytest.approx(1113.2, rel=1e-6)


class TestValidation:
    """Coordinate validation."""

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-90.5, 0), (0, 180.1), (float("nan"), 0), (0, float("inf"))])
    def test_rejects_bad_coordinates(self, lat, lon):
        """Out of range and non-finite values raise ValueError."""
        with pytest.raises(ValueError):
            validate_coordinates(lat, lon)

    def test_rejects_non_numbers(self):
        """Strings that are not numbers raise ValueError."""
        with pytest.raises(ValueError):
            validate_coordinates("north", 0)

    def test_accepts_limits(self):
        """The poles and the antimeridian are valid."""
        validate_coordinates(90, 180)
        validate_coordinates(-90, -180)


class TestConversionsAndFormatting:
    def test_unit_conversions(self):
        """Knots, metres and nautical miles."""
        assert mps_to_kt(1.0) == pytest.approx(1.94384)
        assert nm_to_m(1.0) == 1852.0
        assert m_to_nm(926.0) == pytest.approx(0.5)

    def test_format_distance(self):
        """Short distances in metres, otherwise NM with two decimals."""
        assert format_distance(0.05) == "93 m"
        assert format_distance(1.234) == "1.23 NM"

    def test_format_time(self):
        """Minutes alone under an hour, hours and minutes above."""
        assert format_time(45) == "45 min"
        assert format_time(135) == "2h 15m"

    def test_format_time_rounds_before_splitting(self):
        """Minutes that round up to a full hour carry into the hour."""
        assert format_time(119.6) == "2h 0m"
        assert format_time(59.6) == "1h 0m"
        assert format_time(12.4) == "12 min"

    def test_format_bearing(self):
        """Bearing with its nearest cardinal point."""
        assert format_bearing(0) == "0° N"
        assert format_bearing(92) == "92° E"
        assert format_bearing(350) == "350° N"
