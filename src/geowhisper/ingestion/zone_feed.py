"""
Zone feed client (backend `/api/posts/towers`).

Fetches every zone the backend has clustered, with its representative
coordinate and post count. The raw list is kept in the session store for
`feed.cache_ttl_seconds` so repeated map/nearby views do not refetch it; if the
backend is down, an expired copy is served rather than failing.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, TypeVar

import httpx

from geowhisper.config.settings import Settings
from geowhisper.core.http import post_json
from geowhisper.core.store import KeyValueStore
from geowhisper.domain.models import Zone

logger = logging.getLogger(__name__)

ALL_ZONES_CACHE_KEY = "gw_allTowers_cache_v1"


T = TypeVar("T")


def parse_feed_rows(rows: Any, factory: Callable[[dict[str, Any]], T]) -> list[T]:
    """Parse backend rows with `factory`, skipping rows that do not validate."""
    if not isinstance(rows, list):
        return []
    out: list[T] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            out.append(factory(row))
        except (TypeError, ValueError) as exc:
            logger.debug("Skipping malformed feed row %r: %s", row, exc)
    return out


def parse_zone_rows(rows: Any) -> list[Zone]:
    return parse_feed_rows(rows, Zone.from_feed)


class ZoneFeedClient:
    def __init__(self, settings: Settings, store: KeyValueStore):
        self._settings = settings
        self._store = store

    def _read_cache(self) -> dict[str, Any] | None:
        try:
            raw = self._store.get(ALL_ZONES_CACHE_KEY)
            parsed = json.loads(raw) if raw else None
        except Exception as exc:
            logger.debug("Zone feed cache unreadable: %s", exc)
            return None
        if not isinstance(parsed, dict) or not isinstance(parsed.get("data"), list):
            return None
        return parsed

    def _write_cache(self, rows: list[Any]) -> None:
        payload = {"ts": int(time.time()), "data": rows}
        try:
            self._store.set(ALL_ZONES_CACHE_KEY, json.dumps(payload, ensure_ascii=False))
        except Exception as exc:
            logger.debug("Zone feed cache write failed: %s", exc)

    def _fetch_rows(self) -> list[Any]:
        cfg = self._settings.feed
        url = f"{cfg.api_base_url.rstrip('/')}/api/posts/towers"
        logger.info("Fetching zone feed from %s", url)
        result = post_json(
            url,
            payload={"clusterRadiusMeters": cfg.cluster_radius_m, "maxPosts": cfg.max_posts},
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )
        rows = result.get("data") if isinstance(result, dict) else None
        if not isinstance(rows, list):
            raise ValueError("Zone feed response has no 'data' list")
        return rows

    def get_all_zones(self) -> list[Zone]:
        """Return all zones, from the session cache when fresh.

        Raises:
            httpx.HTTPError / ValueError: If the fetch fails and no cached copy exists.
        """
        cached = self._read_cache()
        ttl = int(self._settings.feed.cache_ttl_seconds)
        if cached is not None and int(time.time()) - int(cached.get("ts") or 0) < ttl:
            return parse_zone_rows(cached["data"])

        try:
            rows = self._fetch_rows()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            if cached is not None:
                logger.warning("Zone feed fetch failed, serving stale copy: %s", exc)
                return parse_zone_rows(cached["data"])
            raise

        self._write_cache(rows)
        return parse_zone_rows(rows)
