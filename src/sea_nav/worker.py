"""Background cache warmer for sea-nav.

Walks the saved routes, and pre-fetches seamark hazards for the padded
bounding box of each so route analysis keeps working offline.

Run with:  python -m sea_nav.worker
"""
from __future__ import annotations

import logging
import time
from typing import Optional

log = logging.getLogger(__name__)


def _warm_route_hazards(route, catalog) -> bool:
    """Fetch hazards for one route's area.  Returns True when live data was stored."""
    from sea_nav.core.models import BoundingBox
    from sea_nav.hazards.analyzer import BBOX_PAD_DEG

    bbox = BoundingBox.around(route.waypoints, pad_deg=BBOX_PAD_DEG)
    snapshot = catalog.lookup(bbox)
    log.info(
        "Route %s (%s): %d hazard(s), origin=%s",
        route.id, route.name, len(snapshot.hazards), snapshot.origin,
    )
    return snapshot.origin == "live"


def run_cycle(store=None, catalog=None) -> int:
    """Run one warming pass.  Returns the number of routes refreshed from live data."""
    from sea_nav.cache.store import get_store
    from sea_nav.core.saved_routes import SavedRoutes
    from sea_nav.hazards.catalog import HazardCatalog

    store = store if store is not None else get_store()
    routes = SavedRoutes(store).get_saved_routes()
    if not routes:
        log.info("No saved routes to warm")
        return 0

    catalog = catalog or HazardCatalog(store=store)
    log.info("Warming hazards for %d saved route(s)", len(routes))

    warmed = 0
    for route in routes:
        try:
            if _warm_route_hazards(route, catalog):
                warmed += 1
        except Exception as exc:
            log.warning("Hazard warm failed for route %s: %s", route.id, exc)
    return warmed


def main(max_cycles: Optional[int] = None) -> None:
    from sea_nav.config import settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [worker] %(levelname)s %(message)s",
    )
    log.info("Worker starting (interval=%ds)", settings.worker_interval_s)

    cycles = 0
    while True:
        try:
            run_cycle()
        except Exception as exc:
            log.exception("Worker cycle error: %s", exc)
        cycles += 1
        if max_cycles is not None and cycles >= max_cycles:
            return
        log.info("Sleeping %ds until next cycle", settings.worker_interval_s)
        time.sleep(settings.worker_interval_s)


if __name__ == "__main__":
    main()
