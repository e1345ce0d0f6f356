"""
Tests for the background hazard warmer and the developer CLI.
"""

from unittest.mock import Mock, patch

import pytest

from sea_nav import cli, worker
from sea_nav.core.models import HazardSnapshot
from sea_nav.core.route import generate_route
from sea_nav.core.saved_routes import SavedRoutes


def _route(lon):
    return generate_route({"lat": 0, "lon": lon, "name": "A"}, {"lat": 0.2, "lon": lon, "name": "B"})


class TestWorker:
    def test_no_routes(self, store):
        catalog = Mock()
        assert worker.run_cycle(store=store, catalog=catalog) == 0
        catalog.lookup.assert_not_called()

    def test_warms_each_saved_route(self, store):
        """Each route's padded box is looked up; a failing route does not stop the pass."""
        saved = SavedRoutes(store)
        for lon in (10.0, 20.0, 30.0):
            saved.save_route(_route(lon))

        catalog = Mock()
        catalog.lookup.side_effect = [
            HazardSnapshot(origin="live"),
            RuntimeError("unexpected"),
            HazardSnapshot(origin="none"),
        ]

        assert worker.run_cycle(store=store, catalog=catalog) == 1
        assert catalog.lookup.call_count == 3
        first_box = catalog.lookup.call_args_list[0].args[0]
        assert (first_box.south, first_box.west, first_box.north, first_box.east) == pytest.approx(
            (-0.1, 9.9, 0.3, 10.1)
        )

    def test_main_runs_bounded_cycles(self):
        with patch.object(worker, "run_cycle") as run_cycle, patch.object(worker.time, "sleep") as sleep:
            run_cycle.side_effect = [RuntimeError("boom"), 0]
            worker.main(max_cycles=2)

        assert run_cycle.call_count == 2
        sleep.assert_called_once()


class TestCli:
    def test_plan_saves_route(self, store, capsys):
        with patch("sea_nav.core.saved_routes.get_store", return_value=store):
            code = cli.main(["plan", "0", "0", "0", "1", "--via", "0.1,0.5", "--save", "--speed", "6"])

        assert code == 0
        routes = SavedRoutes(store).get_saved_routes()
        assert len(routes) == 1
        assert len(routes[0].waypoints) == 3
        assert "Saved route" in capsys.readouterr().out

    def test_plan_rejects_bad_coordinates(self, capsys):
        assert cli.main(["plan", "100", "0", "0", "1"]) == 1

    def test_routes_lists_saved(self, store, capsys):
        SavedRoutes(store).save_route(_route(5.0))
        with patch("sea_nav.core.saved_routes.get_store", return_value=store):
            assert cli.main(["routes"]) == 0
        assert "Saved routes (1)" in capsys.readouterr().out

    def test_analyze_unknown_route(self, store):
        with patch("sea_nav.core.saved_routes.get_store", return_value=store):
            assert cli.main(["analyze", "missing"]) == 1

    def test_analyze_reports_verdict(self, store, capsys):
        route = _route(5.0)
        SavedRoutes(store).save_route(route)
        catalog = Mock()
        catalog.lookup.return_value = HazardSnapshot(origin="live")

        with patch("sea_nav.core.saved_routes.get_store", return_value=store), patch(
            "sea_nav.hazards.analyzer.HazardCatalog", return_value=catalog
        ):
            assert cli.main(["analyze", route.id]) == 0

        assert "SAFE" in capsys.readouterr().out
