from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from sea_nav.core.geodesy import bearing_deg, distance_nm, format_bearing, format_distance, format_time
from sea_nav.core.models import CoastSearchOptions, NamedPoint, Route
from sea_nav.core.route import add_waypoint, calculate_eta_min, generate_route
from sea_nav.core.saved_routes import SavedRoutes
from sea_nav.hazards.analyzer import analyze_route_hazards, requires_rerouting
from sea_nav.marinas.directory import search_nearby_coasts


_SEVERITY_STYLE = {"critical": "bold red", "danger": "red", "warning": "yellow", "info": "dim"}


def _parse_point(text: str) -> NamedPoint:
    try:
        lat_s, lon_s = text.split(",", 1)
        return NamedPoint(lat=float(lat_s), lon=float(lon_s))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LAT,LON, got {text!r}")


def _legs_table(route: Route) -> Table:
    table = Table(title=f"Route: {route.name}")
    table.add_column("#")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Dist")
    table.add_column("Bearing")
    table.add_column("Time")

    for i, (a, b) in enumerate(zip(route.waypoints, route.waypoints[1:]), start=1):
        d = distance_nm(a.lat, a.lon, b.lat, b.lon)
        table.add_row(
            str(i),
            a.name,
            b.name,
            format_distance(d),
            format_bearing(bearing_deg(a.lat, a.lon, b.lat, b.lon)),
            format_time(calculate_eta_min(d, route.average_speed_kt)),
        )
    return table


def _cmd_plan(args, console: Console) -> int:
    start = NamedPoint(lat=args.start_lat, lon=args.start_lon, name=args.start_name or "")
    dest = NamedPoint(lat=args.dest_lat, lon=args.dest_lon, name=args.dest_name or "")
    route = generate_route(start, dest, average_speed_kt=args.speed)
    for p in args.via or []:
        route = add_waypoint(route, p)

    console.print(_legs_table(route))
    console.print(
        f"Total {format_distance(route.total_distance_nm)}, "
        f"{format_time(route.estimated_time_hours * 60)} at {route.average_speed_kt:g} kt"
    )
    if args.save:
        SavedRoutes().save_route(route)
        console.print(f"Saved route {route.id}")
    return 0


def _cmd_analyze(args, console: Console) -> int:
    route = SavedRoutes().get_route(args.route_id)
    if route is None:
        console.print(f"[red]No saved route with id {args.route_id}[/red]")
        return 1

    analysis = analyze_route_hazards(route.waypoints, vessel_draft_m=args.draft, safety_margin_m=args.margin)

    table = Table(title=f"Hazards: {route.name} (data: {analysis.hazard_data_origin})")
    table.add_column("Leg")
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Dist m")
    table.add_column("Depth m")
    table.add_column("Description")
    for rh in sorted(analysis.hazards, key=lambda h: (h.waypoint_segment, h.distance_from_route_m)):
        h = rh.hazard
        style = _SEVERITY_STYLE.get(h.severity, "")
        table.add_row(
            str(rh.waypoint_segment + 1),
            h.type,
            f"[{style}]{h.severity}[/{style}]" if style else h.severity,
            f"{rh.distance_from_route_m:.0f}",
            "" if h.depth_m is None else f"{h.depth_m:g}",
            h.description or "",
        )
    console.print(table)

    for w in analysis.warnings:
        console.print(f"[yellow]! {w}[/yellow]")
    for r in analysis.recommendations:
        console.print(f"- {r}")

    verdict = "[green]SAFE[/green]" if analysis.is_safe else "[bold red]UNSAFE[/bold red]"
    console.print(f"Verdict: {verdict}")
    if requires_rerouting(analysis):
        console.print("Rerouting recommended.")
    return 0 if analysis.is_safe else 2


def _cmd_routes(args, console: Console) -> int:
    routes = SavedRoutes().get_saved_routes()
    table = Table(title=f"Saved routes ({len(routes)})")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Waypoints")
    table.add_column("Distance")
    table.add_column("Time")
    table.add_column("Created")
    for r in routes:
        table.add_row(
            r.id,
            r.name,
            str(len(r.waypoints)),
            format_distance(r.total_distance_nm),
            format_time(r.estimated_time_hours * 60),
            r.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)
    return 0


def _cmd_marinas(args, console: Console) -> int:
    options = CoastSearchOptions(radius_nm=args.radius, sort_by=args.sort)
    marinas = search_nearby_coasts(args.lat, args.lon, options)

    table = Table(title=f"Within {args.radius:g} NM of {args.lat:.4f}, {args.lon:.4f}")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Dist")
    table.add_column("Bearing")
    table.add_column("VHF")
    table.add_column("Amenities")
    for m in marinas:
        table.add_row(
            m.name,
            m.type,
            format_distance(m.distance_nm),
            format_bearing(m.bearing_deg),
            m.vhf_channel or "",
            ", ".join(m.amenities),
        )
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="sea-nav")
    ap.add_argument("--debug", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("plan", help="Build a route and print its legs")
    p.add_argument("start_lat", type=float)
    p.add_argument("start_lon", type=float)
    p.add_argument("dest_lat", type=float)
    p.add_argument("dest_lon", type=float)
    p.add_argument("--start-name")
    p.add_argument("--dest-name")
    p.add_argument("--via", type=_parse_point, action="append", help="Intermediate LAT,LON (repeatable)")
    p.add_argument("--speed", type=float, default=5.0, help="Average speed, kt")
    p.add_argument("--save", action="store_true")
    p.set_defaults(func=_cmd_plan)

    p = sub.add_parser("analyze", help="Check a saved route against seamark hazards")
    p.add_argument("route_id")
    p.add_argument("--draft", type=float, default=2.0, help="Vessel draft, m")
    p.add_argument("--margin", type=float, default=500.0, help="Safety margin, m")
    p.set_defaults(func=_cmd_analyze)

    p = sub.add_parser("routes", help="List saved routes")
    p.set_defaults(func=_cmd_routes)

    p = sub.add_parser("marinas", help="Find marinas, harbours and beaches nearby")
    p.add_argument("lat", type=float)
    p.add_argument("lon", type=float)
    p.add_argument("--radius", type=float, default=25.0, help="Search radius, NM")
    p.add_argument("--sort", choices=["distance", "rating", "name"], default="distance")
    p.set_defaults(func=_cmd_marinas)

    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    console = Console()
    try:
        return args.func(args, console)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
