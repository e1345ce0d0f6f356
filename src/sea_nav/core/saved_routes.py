"""Saved routes: a named list kept under one store key.  Last write wins."""
from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from sea_nav.cache import keys
from sea_nav.cache.store import KeyValueStore, cache_get_json, cache_set_json, get_store
from sea_nav.core.models import Route

log = logging.getLogger(__name__)


class SavedRoutes:
    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else get_store()

    def get_saved_routes(self) -> List[Route]:
        raw = cache_get_json(self.store, keys.saved_routes())
        if not raw:
            return []
        if not isinstance(raw, list):
            log.warning("Saved routes entry is not a list, ignoring it")
            return []
        routes: List[Route] = []
        for item in raw:
            try:
                routes.append(Route.model_validate(item))
            except ValidationError as exc:
                log.warning("Skipping malformed saved route: %s", exc.errors()[:1])
        return routes

    def _write(self, routes: List[Route]) -> None:
        cache_set_json(
            self.store,
            keys.saved_routes(),
            [r.model_dump(mode="json") for r in routes],
        )

    def save_route(self, route: Route) -> None:
        routes = self.get_saved_routes()
        routes.append(route)
        self._write(routes)

    def get_route(self, route_id: str) -> Optional[Route]:
        for r in self.get_saved_routes():
            if r.id == route_id:
                return r
        return None

    def delete_route(self, route_id: str) -> None:
        routes = [r for r in self.get_saved_routes() if r.id != route_id]
        self._write(routes)


# ── Module-level convenience (default store) ─────────────────────────────

def save_route(route: Route, store: Optional[KeyValueStore] = None) -> None:
    SavedRoutes(store).save_route(route)


def get_saved_routes(store: Optional[KeyValueStore] = None) -> List[Route]:
    return SavedRoutes(store).get_saved_routes()


def delete_route(route_id: str, store: Optional[KeyValueStore] = None) -> None:
    SavedRoutes(store).delete_route(route_id)
