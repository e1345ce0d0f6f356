"""
Shared pytest fixtures for sea-nav tests.

Nothing here touches the network or the user's data directory: stores are
in-memory, feature services are mocks, and the clock is fixed.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from sea_nav.cache.store import MemoryStore
from sea_nav.core.models import NavigationConfig
from sea_nav.core.route import generate_route
from sea_nav.navigation.controller import NavigationController
from sea_nav.navigation.sensors import (
    DeviceCapabilities,
    ManualOrientationSource,
    ManualPositionSource,
)

T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def position_source():
    return ManualPositionSource()


@pytest.fixture
def orientation_source():
    return ManualOrientationSource()


@pytest.fixture
def capabilities():
    return Mock(spec=DeviceCapabilities)


@pytest.fixture
def nav_config():
    return NavigationConfig()


@pytest.fixture
def controller(position_source, orientation_source, capabilities, store, nav_config, clock):
    return NavigationController(
        position_source=position_source,
        orientation_source=orientation_source,
        capabilities=capabilities,
        store=store,
        config=nav_config,
        clock=clock,
    )


@pytest.fixture
def equator_route():
    """Two-point route along the equator, (0,0) -> (0,1): about 60 NM due east."""
    return generate_route(
        {"lat": 0.0, "lon": 0.0, "name": "Alpha"},
        {"lat": 0.0, "lon": 1.0, "name": "Bravo"},
        average_speed_kt=6.0,
    )


@pytest.fixture
def overpass():
    """Mock OverpassClient; tests set ``seamarks``/``coastal`` return values or side effects."""
    client = Mock()
    client.seamarks.return_value = {"elements": []}
    client.coastal.return_value = {"elements": []}
    return client
