"""
Spotfinder CLI entrypoint.

Local simulation and debugging over a JSON trail catalog, without any app or server.
It delegates all game logic to `spotfinder.application.DiscoveryApplication`.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from spotfinder.catalog.loader import build_application, load_catalog, save_catalog, snapshot_catalog
from spotfinder.config.overrides import apply_settings_overrides
from spotfinder.config.settings import Settings, get_settings
from spotfinder.core.geo import format_coordinates
from spotfinder.core.logging import configure_logging
from spotfinder.domain.models import AccountContext, GeoBoundary, GeoLocation, Result
from spotfinder.map.projector import ScreenSize, to_screen


def _settings(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if getattr(args, "override_json", None):
        overrides = json.loads(args.override_json)
        if not isinstance(overrides, dict):
            raise ValueError("--override-json must be a JSON object")
        settings = apply_settings_overrides(settings, overrides)
    return settings


def _emit(result: Result[Any], *, as_json: bool) -> int:
    if not result.success:
        err = result.error
        print(f"error: {err.code}: {err.message}", file=sys.stderr)
        return 1
    if as_json:
        data = result.data
        if isinstance(data, list):
            payload = [d.model_dump(mode="json") for d in data]
        else:
            payload = data.model_dump(mode="json")
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _location(args: argparse.Namespace) -> GeoLocation:
    return GeoLocation(lat=float(args.lat), lon=float(args.lon))


def _cmd_locate(args: argparse.Namespace) -> int:
    """Handle the `locate` subcommand."""
    settings = _settings(args)
    catalog = load_catalog(args.catalog, settings=settings)
    app = build_application(catalog, settings=settings)
    result = app.process_location(
        AccountContext(account_id=args.account),
        args.trail,
        _location(args),
        direction=args.direction,
    )
    if result.success and args.save:
        save_catalog(snapshot_catalog(app), args.catalog)
    if args.json or not result.success:
        return _emit(result, as_json=args.json)

    record = result.data
    print(f"Location: {format_coordinates(record.location.lat, record.location.lon)}")
    if record.discoveries:
        for d in record.discoveries:
            print(f"  discovered {d.spot_id} (id={d.id})")
    else:
        print("  nothing discovered")
    print(f"Snap: intensity={record.snap.intensity:.3f} distance={record.snap.distance:.1f}m")
    return 0


def _cmd_scan(args: argparse.Namespace) -> int:
    settings = _settings(args)
    catalog = load_catalog(args.catalog, settings=settings)
    app = build_application(catalog, settings=settings)
    result = app.create_scan_event(AccountContext(account_id=args.account), args.trail, _location(args))
    if result.success and args.save:
        save_catalog(snapshot_catalog(app), args.catalog)
    if args.json or not result.success:
        return _emit(result, as_json=args.json)

    event = result.data
    print(f"Scan {event.id}: radius={event.radius_used:.0f}m successful={event.successful}")
    for clue in event.clues:
        print(f"  clue {clue.spot_id} at {format_coordinates(clue.location.lat, clue.location.lon)}")
    return 0


def _cmd_trail(args: argparse.Namespace) -> int:
    settings = _settings(args)
    app = build_application(load_catalog(args.catalog, settings=settings), settings=settings)
    result = app.get_discovery_trail(AccountContext(account_id=args.account), args.trail)
    if args.json or not result.success:
        return _emit(result, as_json=args.json)

    view = result.data
    print(f"Trail {view.trail.id} ({view.trail.name or 'unnamed'})")
    for ds in view.discovered_spots:
        print(f"  found {ds.spot.id} at {ds.discovered_at.isoformat()}")
    for clue in view.preview_clues:
        print(f"  clue {clue.spot_id}")
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    settings = _settings(args)
    app = build_application(load_catalog(args.catalog, settings=settings), settings=settings)
    context = AccountContext(account_id=args.account)
    if args.discovery:
        result = app.get_discovery_stats(context, args.discovery)
        return _emit(result, as_json=True)
    if not args.trail:
        print("error: --trail is required unless --discovery is given", file=sys.stderr)
        return 2

    result = app.get_trail_stats(context, args.trail)
    if args.json or not result.success:
        return _emit(result, as_json=args.json)

    stats = result.data
    print(
        f"Trail {stats.trail_id}: {stats.discovered_spots}/{stats.total_spots} "
        f"({stats.progress_percentage}%) {stats.completion_status}"
    )
    print(f"Rank: {stats.rank or '-'} of {stats.total_discoverers}")
    return 0


def _cmd_project(args: argparse.Namespace) -> int:
    boundary = GeoBoundary(
        north_east=GeoLocation(lat=args.north, lon=args.east),
        south_west=GeoLocation(lat=args.south, lon=args.west),
    )
    point = to_screen(_location(args), boundary, ScreenSize(args.width, args.height))
    print(json.dumps({"x": point.x, "y": point.y}))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the Spotfinder CLI."""
    parser = argparse.ArgumentParser(prog="spotfinder")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--catalog", required=True, help="Path to a trail catalog JSON file")
    common.add_argument("--account", default=None, help="Acting account id")
    common.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    common.add_argument(
        "--override-json",
        default=None,
        help='Per-run settings overrides, e.g. \'{"discovery": {"default_scanner_radius_m": 80}}\'',
    )

    on_trail = argparse.ArgumentParser(add_help=False)
    on_trail.add_argument("--trail", required=True)

    loc = sub.add_parser("locate", parents=[common, on_trail], help="Process a location update.")
    loc.add_argument("--lat", required=True, type=float)
    loc.add_argument("--lon", required=True, type=float)
    loc.add_argument("--direction", type=float, default=None, help="Heading in degrees")
    loc.add_argument("--save", action="store_true", help="Write new discoveries back to the catalog")
    loc.set_defaults(func=_cmd_locate)

    scan = sub.add_parser("scan", parents=[common, on_trail], help="Sweep the trail's scanner radius.")
    scan.add_argument("--lat", required=True, type=float)
    scan.add_argument("--lon", required=True, type=float)
    scan.add_argument("--save", action="store_true", help="Record the scan event in the catalog")
    scan.set_defaults(func=_cmd_scan)

    tr = sub.add_parser("trail", parents=[common, on_trail], help="Show discovered spots and preview clues.")
    tr.set_defaults(func=_cmd_trail)

    st = sub.add_parser("stats", parents=[common], help="Trail progress and rank, or one discovery's stats.")
    st.add_argument("--trail", default=None, help="Trail id (not needed with --discovery)")
    st.add_argument("--discovery", default=None, help="Discovery id (prints per-discovery stats)")
    st.set_defaults(func=_cmd_stats)

    pr = sub.add_parser("project", help="Project a location onto a canvas.")
    pr.add_argument("--north", required=True, type=float)
    pr.add_argument("--south", required=True, type=float)
    pr.add_argument("--east", required=True, type=float)
    pr.add_argument("--west", required=True, type=float)
    pr.add_argument("--lat", required=True, type=float)
    pr.add_argument("--lon", required=True, type=float)
    pr.add_argument("--width", type=float, default=1000.0)
    pr.add_argument("--height", type=float, default=1000.0)
    pr.set_defaults(func=_cmd_project)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m spotfinder.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
