"""
Lightweight spatial indexing (grid bucket) for located entities.

The map view asks "what is near here?" for many centers against one zone feed.
Bucketing the feed once avoids an O(N) haversine scan per query; results match
`proximity.ranking.within_radius` exactly (same filter, same ordering).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from geowhisper.core.geo import EARTH_RADIUS_M, Location, haversine_m

T = TypeVar("T")


def _to_xy_m(location: Location, *, lat0_deg: float) -> tuple[float, float]:
    # Equirectangular projection around a reference latitude (city-scale accuracy).
    lat0 = math.radians(lat0_deg)
    x = location.longitude * 111_320.0 * math.cos(lat0)
    y = location.latitude * 110_540.0
    return x, y


@dataclass(frozen=True)
class _Entry(Generic[T]):
    order: int
    item: T
    location: Location
    x_m: float
    y_m: float


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: Iterable[T],
        *,
        get_location: Callable[[T], Location | None] = lambda it: it.location,
        cell_size_m: float = 1200.0,
        lat0_deg: float | None = None,
    ):
        if float(cell_size_m) <= 0:
            raise ValueError("cell_size_m must be > 0")
        self._cell_size_m = float(cell_size_m)
        self._cells: dict[tuple[int, int], list[_Entry[T]]] = {}

        located = [(it, get_location(it)) for it in items]
        located = [(it, loc) for it, loc in located if loc is not None]
        if lat0_deg is None:
            lat0_deg = (sum(loc.latitude for _, loc in located) / len(located)) if located else 0.0
        self._lat0_deg = float(lat0_deg)

        for order, (it, loc) in enumerate(located):
            x_m, y_m = _to_xy_m(loc, lat0_deg=self._lat0_deg)
            e = _Entry(order=order, item=it, location=loc, x_m=x_m, y_m=y_m)
            self._cells.setdefault(self._cell_key_xy(x_m, y_m), []).append(e)
        self._size = len(located)

    def __len__(self) -> int:
        return self._size

    def _cell_key_xy(self, x_m: float, y_m: float) -> tuple[int, int]:
        return (int(math.floor(x_m / self._cell_size_m)), int(math.floor(y_m / self._cell_size_m)))

    def _cell_range(self, center: Location, r: float) -> tuple[range, range] | None:
        """Cell rows/columns covering the query circle, or None if the box is unsafe to grid.

        Uses the exact lat/lon bounds of a spherical cap, so the sweep is correct
        at any latitude regardless of `lat0`. Circles reaching a pole or crossing
        +/-180 degrees return None (the projection does not wrap).
        """
        rho = r / EARTH_RADIUS_M
        cos_lat = math.cos(math.radians(center.latitude))
        if rho >= math.pi / 2 or cos_lat <= 0:
            return None
        s = math.sin(rho) / cos_lat
        if s >= 1:
            return None
        dlat = math.degrees(rho)
        dlon = math.degrees(math.asin(s))
        lon_min, lon_max = center.longitude - dlon, center.longitude + dlon
        if lon_min < -180 or lon_max > 180:
            return None

        x_min, y_min = _to_xy_m(Location(center.latitude - dlat, lon_min), lat0_deg=self._lat0_deg)
        x_max, y_max = _to_xy_m(Location(center.latitude + dlat, lon_max), lat0_deg=self._lat0_deg)
        # One spare cell per side absorbs float noise at cell borders.
        ix0, iy0 = self._cell_key_xy(x_min, y_min)
        ix1, iy1 = self._cell_key_xy(x_max, y_max)
        return range(ix0 - 1, ix1 + 2), range(iy0 - 1, iy1 + 2)

    def query_within(self, center: Location, radius_m: float) -> list[tuple[T, float]]:
        """Return `(item, distance_m)` within `radius_m`, nearest first, ties in input order."""
        r = float(radius_m)
        if r <= 0:
            return []

        cells = self._cell_range(center, r)
        if cells is None or len(cells[0]) * len(cells[1]) >= len(self._cells):
            candidates = [e for cell in self._cells.values() for e in cell]
        else:
            xs, ys = cells
            candidates = [e for ix in xs for iy in ys for e in self._cells.get((ix, iy), ())]

        hits: list[tuple[float, int, T]] = []
        for e in candidates:
            d = haversine_m(center, e.location)
            if d <= r:
                hits.append((d, e.order, e.item))
        hits.sort(key=lambda h: (h[0], h[1]))
        return [(item, d) for d, _, item in hits]
