"""
GeoWhisper CLI entrypoint.

This CLI is intended for local debugging of the zone engine without the web UI:
rank nearby zones, list hot zones, and resolve zone labels/numbers against a
session store (by default a file store, so numbers persist between runs).
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from geowhisper.config.settings import Settings, get_settings
from geowhisper.core.geo import Location, format_distance
from geowhisper.core.logging import configure_logging
from geowhisper.core.spatial_index import SpatialGridIndex
from geowhisper.core.store import KeyValueStore, build_store
from geowhisper.domain.models import Zone
from geowhisper.ingestion.geocoding_client import MapboxGeocoder
from geowhisper.ingestion.post_feed import PostFeedClient
from geowhisper.ingestion.zone_feed import ZoneFeedClient
from geowhisper.proximity.ranking import current_zone, hot_zones, nearby
from geowhisper.zones.labels import ZoneLabelResolver
from geowhisper.zones.numbering import ZoneNumbering


def _center(args: argparse.Namespace) -> Location:
    return Location(latitude=float(args.lat), longitude=float(args.lon))


def _zone_row(zone: Zone, *, numbering: ZoneNumbering, labels: ZoneLabelResolver, center: Location) -> dict[str, Any]:
    return {
        "id": zone.id,
        "number": numbering.get_zone_number(zone.id),
        "label": labels.label_for(zone, center),
        "post_count": zone.post_count,
    }


def _services(settings: Settings) -> tuple[KeyValueStore, ZoneNumbering, ZoneLabelResolver]:
    store = build_store(settings)
    return store, ZoneNumbering(store), ZoneLabelResolver(store, MapboxGeocoder(settings))


def _cmd_nearby(args: argparse.Namespace) -> int:
    """Handle the `nearby` subcommand."""
    settings = get_settings()
    store, numbering, labels = _services(settings)
    center = _center(args)
    radius = float(args.radius) if args.radius is not None else settings.proximity.nearby_zones_radius_m

    zones = ZoneFeedClient(settings, store).get_all_zones()
    index = SpatialGridIndex(zones, cell_size_m=settings.proximity.grid_cell_size_m)
    ranked = nearby(center, index, radius_m=radius, limit=args.limit)
    here = current_zone(center, zones, radius_m=settings.proximity.current_zone_radius_m)

    rows = []
    for r in ranked:
        row = _zone_row(r.entity, numbering=numbering, labels=labels, center=center)
        row["distance_m"] = round(r.distance_m, 1)
        row["current"] = here is not None and here.entity.id == r.entity.id
        rows.append(row)

    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    print(f"{len(rows)} zones within {int(radius)}m")
    for row in rows:
        marker = "*" if row["current"] else " "
        print(
            f"{marker} {row['number']:<10} {format_distance(row['distance_m']):<14} "
            f"posts={row['post_count']:<5} {row['label']}"
        )
    return 0


def _cmd_hot_zones(args: argparse.Namespace) -> int:
    """Handle the `hot-zones` subcommand."""
    settings = get_settings()
    store, numbering, labels = _services(settings)
    center = _center(args)
    radius = float(args.radius) if args.radius is not None else settings.proximity.hot_zones_radius_m
    top_n = int(args.top) if args.top is not None else settings.proximity.hot_zones_count

    zones = ZoneFeedClient(settings, store).get_all_zones()
    top = hot_zones(center, radius, [(z, z.post_count) for z in zones], top_n)
    rows = [_zone_row(z, numbering=numbering, labels=labels, center=center) for z in top]

    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    print(f"Top {len(rows)} hot zones within {int(radius)}m")
    for i, row in enumerate(rows, start=1):
        print(f"{i:>2}. {row['number']:<10} posts={row['post_count']:<5} {row['label']}")
    return 0


def _cmd_posts(args: argparse.Namespace) -> int:
    """Handle the `posts` subcommand."""
    settings = get_settings()
    _, numbering, _ = _services(settings)
    ranked = PostFeedClient(settings).get_nearby_posts(
        _center(args), radius_m=args.radius, limit=args.limit, zone_id=args.zone
    )
    rows = [
        {
            "id": r.entity.id,
            "zone": numbering.get_zone_number(r.entity.zone_id),
            "distance_m": round(r.distance_m, 1),
            "content": r.entity.content,
        }
        for r in ranked
    ]

    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    print(f"{len(rows)} posts nearby")
    for row in rows:
        print(f"  {format_distance(row['distance_m']):<14} {row['zone']:<10} {row['content'] or ''}")
    return 0


def _cmd_label(args: argparse.Namespace) -> int:
    """Handle the `label` subcommand (fallback first, then try to enrich)."""
    settings = get_settings()
    _, numbering, labels = _services(settings)

    location = None
    if args.lat is not None and args.lon is not None:
        location = Location(latitude=float(args.lat), longitude=float(args.lon))
    user = None
    if args.user_lat is not None and args.user_lon is not None:
        user = Location(latitude=float(args.user_lat), longitude=float(args.user_lon))
    zone = Zone(id=args.zone_id, location=location)

    label = labels.get_cached_label(zone.id)
    source = "cache"
    if label is None:
        label, source = labels.resolve_fallback_label(zone, user), "fallback"
        if not args.offline:
            resolved = asyncio.run(labels.resolve_and_cache_label(zone))
            if resolved is not None:
                label, source = resolved, "geocoded"

    out = {"id": zone.id, "number": numbering.get_zone_number(zone.id), "label": label, "source": source}
    if args.json:
        print(json.dumps(out, ensure_ascii=False, indent=2))
    else:
        print(f"{out['number']}: {out['label']} ({out['source']})")
    return 0


def _cmd_number(args: argparse.Namespace) -> int:
    settings = get_settings()
    _, numbering, _ = _services(settings)
    for zone_id in args.zone_id:
        print(f"{zone_id}\t{numbering.get_zone_number(zone_id)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the GeoWhisper CLI."""
    parser = argparse.ArgumentParser(prog="geowhisper")
    sub = parser.add_subparsers(dest="command", required=True)

    near = sub.add_parser("nearby", help="List zones near a point, nearest first.")
    near.add_argument("--lat", required=True, type=float)
    near.add_argument("--lon", required=True, type=float)
    near.add_argument("--radius", type=float, default=None, help="Meters (default: proximity.nearby_zones_radius_m)")
    near.add_argument("--limit", type=int, default=None)
    near.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    near.set_defaults(func=_cmd_nearby)

    hot = sub.add_parser("hot-zones", help="Rank the busiest zones near a point.")
    hot.add_argument("--lat", required=True, type=float)
    hot.add_argument("--lon", required=True, type=float)
    hot.add_argument("--radius", type=float, default=None, help="Meters (default: proximity.hot_zones_radius_m)")
    hot.add_argument("--top", type=int, default=None, help="Default: proximity.hot_zones_count")
    hot.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    hot.set_defaults(func=_cmd_hot_zones)

    posts = sub.add_parser("posts", help="List posts near a point, nearest first.")
    posts.add_argument("--lat", required=True, type=float)
    posts.add_argument("--lon", required=True, type=float)
    posts.add_argument("--radius", type=float, default=None, help="Meters (default: proximity.nearby_posts_radius_m)")
    posts.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Default: proximity.nearby_posts_limit (proximity.max_posts_per_zone with --zone)",
    )
    posts.add_argument("--zone", type=str, default=None, help="Only posts in this zone id")
    posts.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    posts.set_defaults(func=_cmd_posts)

    lab = sub.add_parser("label", help="Resolve the display label for one zone.")
    lab.add_argument("zone_id")
    lab.add_argument("--lat", type=float, default=None, help="Zone latitude")
    lab.add_argument("--lon", type=float, default=None, help="Zone longitude")
    lab.add_argument("--user-lat", type=float, default=None)
    lab.add_argument("--user-lon", type=float, default=None)
    lab.add_argument("--offline", action="store_true", help="Skip reverse geocoding")
    lab.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    lab.set_defaults(func=_cmd_label)

    num = sub.add_parser("number", help="Show (and assign) session zone numbers.")
    num.add_argument("zone_id", nargs="+")
    num.set_defaults(func=_cmd_number)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m geowhisper.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
