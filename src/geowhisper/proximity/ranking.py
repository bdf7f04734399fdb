"""
Proximity ranking for posts and zones.

All functions here are pure: they read locations, compute haversine distances,
and return new lists. Input entities are never modified or copied; results
hold the same objects the caller passed in.

Radii, limits and top-N values come from `settings.proximity`; this module
takes them as plain numbers and treats zero or negative radii as "nothing in
range" rather than an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from geowhisper.core.geo import Location, haversine_m
from geowhisper.core.spatial_index import SpatialGridIndex
from geowhisper.domain.models import Located, Zone

T = TypeVar("T")


@dataclass(frozen=True)
class RankedEntity(Generic[T]):
    """One proximity result: the caller's entity plus its distance from the center."""

    entity: T
    distance_m: float


def _location_of(entity: Located) -> Location | None:
    return entity.location


def within_radius(
    center: Location,
    radius_m: float,
    entities: Iterable[T],
    *,
    get_location: Callable[[T], Location | None] = _location_of,
) -> list[RankedEntity[T]]:
    """Return entities within `radius_m` of `center`, nearest first.

    The boundary is inclusive. Ties keep input order (stable sort). Entities
    without a location are skipped.
    """
    if radius_m <= 0:
        return []
    ranked: list[RankedEntity[T]] = []
    for entity in entities:
        loc = get_location(entity)
        if loc is None:
            continue
        d = haversine_m(center, loc)
        if d <= radius_m:
            ranked.append(RankedEntity(entity=entity, distance_m=d))
    ranked.sort(key=lambda r: r.distance_m)
    return ranked


def within_radius_indexed(
    index: SpatialGridIndex[T], center: Location, radius_m: float
) -> list[RankedEntity[T]]:
    """Same result as `within_radius`, answered from a prebuilt grid index."""
    return [RankedEntity(entity=item, distance_m=d) for item, d in index.query_within(center, radius_m)]


def nearby(
    center: Location,
    entities: Iterable[T] | SpatialGridIndex[T],
    *,
    radius_m: float,
    limit: int | None = None,
) -> list[RankedEntity[T]]:
    """`within_radius` truncated to the first `limit` results (None = no limit).

    `entities` may be a prebuilt `SpatialGridIndex`; the result is the same.
    """
    if isinstance(entities, SpatialGridIndex):
        ranked = within_radius_indexed(entities, center, radius_m)
    else:
        ranked = within_radius(center, radius_m, entities)
    if limit is None:
        return ranked
    return ranked[: max(0, int(limit))]


def hot_zones(
    center: Location,
    radius_m: float,
    zones_with_counts: Iterable[tuple[Zone, int]],
    top_n: int,
) -> list[Zone]:
    """Return the `top_n` busiest zones within `radius_m` of `center`.

    Ordered by count descending, then distance ascending, then input order.
    """
    if top_n <= 0 or radius_m <= 0:
        return []
    pairs = list(zones_with_counts)
    ranked = within_radius(center, radius_m, pairs, get_location=lambda pair: pair[0].location)
    # within_radius already ordered by distance; a stable sort on count keeps that as the tie-break.
    ranked.sort(key=lambda r: -r.entity[1])
    return [r.entity[0] for r in ranked[: int(top_n)]]


def current_zone(
    center: Location,
    zones: Iterable[Zone],
    *,
    radius_m: float,
) -> RankedEntity[Zone] | None:
    """Return the nearest zone the user is "in" (within `radius_m`), or None."""
    ranked = within_radius(center, radius_m, zones)
    return ranked[0] if ranked else None
