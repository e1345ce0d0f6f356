"""Key naming conventions for the sea-nav store.

Hazard and coastal keys round coordinates coarsely, so nearby queries that
round differently miss each other's cache.  That is accepted; do not change
the rounding without migrating stored snapshots.
"""
from __future__ import annotations


# ── Routes ───────────────────────────────────────────────────────────────

def saved_routes() -> str:
    return "savedRoutes"


# ── Active navigation (offline resume) ───────────────────────────────────

def active_route() -> str:
    return "activeRoute"


def navigation_start_time() -> str:
    return "navigationStartTime"


def navigation_positions() -> str:
    return "navigationPositions"


# ── Hazards ──────────────────────────────────────────────────────────────

def nautical_hazards(south: float, west: float) -> str:
    """Snapshot key: south-west corner of the query box at 2 dp."""
    return f"nautical-{south:.2f}-{west:.2f}"


# ── Coastal facilities ───────────────────────────────────────────────────

def coastal(lat: float, lon: float) -> str:
    return f"coastal-{round(lat * 100)}-{round(lon * 100)}"


def favorite_marinas() -> str:
    return "favoriteMarinas"
