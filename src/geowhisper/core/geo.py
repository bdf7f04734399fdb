from __future__ import annotations
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from math import asin, cos, floor, radians, sin, sqrt

"""
Geospatial helpers.

Everything that needs a distance (label fallbacks, proximity ranking, the grid
index) goes through `haversine_m` so the whole app agrees on one Earth model:
a sphere with the mean WGS-84 radius.
"""

EARTH_RADIUS_M = 6_371_000


@dataclass(frozen=True)
class Location:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


def haversine_m(a: Location, b: Location) -> float:
    """Compute great-circle distance in meters between two points.

    Coordinates are not range-checked; out-of-range input gives a defined but
    meaningless number.
    """
    lat1 = radians(a.latitude)
    lon1 = radians(a.longitude)
    lat2 = radians(b.latitude)
    lon2 = radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Float noise can push h a hair past 1 for antipodal points.
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))


def format_distance(meters: float) -> str:
    """Render a distance the way zone labels show it ("350m away", "1.2km away").

    Halves round up (350.5m -> "351m away", 1250m -> "1.3km away"). The km value
    is rounded from the float's exact decimal expansion.
    """
    if meters < 1000:
        return f"{floor(meters + 0.5)}m away"
    km = Decimal(meters / 1000).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{km}km away"
