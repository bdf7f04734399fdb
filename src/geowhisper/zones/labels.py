"""
Zone label resolution.

A zone is shown with the best label available right now:
1. a place name cached earlier in this session,
2. otherwise a deterministic offline fallback (distance, coordinates, or id),
and, in the background, the caller may await `resolve_and_cache_label` to
enrich the cache from reverse geocoding.

Nothing here raises to the caller. Storage trouble reads as a cache miss and
geocoding trouble reads as "no enrichment available" (`None`).

Concurrent resolutions for the same zone are not de-duplicated; the last one
to finish wins the cache slot.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from geowhisper.core.geo import Location, format_distance, haversine_m
from geowhisper.core.store import KeyValueStore
from geowhisper.domain.models import Zone

logger = logging.getLogger(__name__)

LABEL_KEY_PREFIX = "tower_label_"


class ReverseGeocoder(Protocol):
    @property
    def has_token(self) -> bool: ...

    async def reverse(self, location: Location) -> dict[str, Any]: ...


def label_cache_key(zone_id: str) -> str:
    return f"{LABEL_KEY_PREFIX}{zone_id}"


def short_zone_id(zone_id: str | None, length: int = 8) -> str:
    return zone_id[:length] if zone_id else "unknown"


def coordinate_label(location: Location, sep: str = ", ") -> str:
    return f"{location.latitude:.3f}{sep}{location.longitude:.3f}"


def pick_place_name(payload: dict[str, Any], location: Location) -> str | None:
    """Pick the most specific name from a feature collection.

    Prefers the short place/neighborhood `text`, then the full `place_name`, then
    the coordinates. Returns None when there is no first feature at all.
    """
    features = payload.get("features")
    if not isinstance(features, list) or not features:
        return None
    first = features[0]
    if not isinstance(first, dict):
        return None
    for field in ("text", "place_name"):
        value = first.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return coordinate_label(location, sep=",")


class ZoneLabelResolver:
    """Resolves display labels for zones against one session store."""

    def __init__(self, store: KeyValueStore, geocoder: ReverseGeocoder | None = None):
        self._store = store
        self._geocoder = geocoder

    def get_cached_label(self, zone_id: str) -> str | None:
        """Return the cached label for `zone_id`, or None. Never performs network I/O."""
        if not zone_id:
            return None
        try:
            raw = self._store.get(label_cache_key(zone_id))
        except Exception as exc:
            logger.debug("Label cache read failed for %s: %s", zone_id, exc)
            return None
        return raw or None

    def resolve_fallback_label(self, zone: Zone, user_location: Location | None = None) -> str:
        """Return a label computed without cache or network.

        Distance from the user when both points are known, else the zone's
        coordinates, else a short form of the zone id.
        """
        if zone.location is not None and user_location is not None:
            return format_distance(haversine_m(user_location, zone.location))
        if zone.location is not None:
            return coordinate_label(zone.location)
        return f"Zone {short_zone_id(zone.id)}"

    def label_for(self, zone: Zone, user_location: Location | None = None) -> str:
        """Return what should be shown synchronously: cached label or fallback."""
        cached = self.get_cached_label(zone.id)
        if cached is not None:
            return cached
        return self.resolve_fallback_label(zone, user_location)

    async def resolve_and_cache_label(self, zone: Zone) -> str | None:
        """Reverse-geocode `zone`, cache the place name, and return it.

        Returns None without any network access when no geocoder token is
        configured or the zone has no location. Returns None (and writes
        nothing) on any network or payload failure.
        """
        geocoder = self._geocoder
        if geocoder is None or not geocoder.has_token or zone.location is None:
            return None

        try:
            payload = await geocoder.reverse(zone.location)
            label = pick_place_name(payload, zone.location)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.warning("Reverse geocoding failed for zone %s: %s", zone.id, exc)
            return None

        if label is None:
            logger.info("No place name for zone %s", zone.id)
            return None

        if zone.id:
            try:
                self._store.set(label_cache_key(zone.id), label)
            except Exception as exc:
                logger.debug("Label cache write failed for %s: %s", zone.id, exc)
        return label
