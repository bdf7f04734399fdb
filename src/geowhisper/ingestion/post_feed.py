"""
Nearby posts client (backend `/api/posts/nearby`).

The backend pre-filters posts around a point; the result is re-ranked locally
with `proximity.ranking.nearby` so ordering and the radius boundary follow the
same haversine rule as every other list in the app.
"""

from __future__ import annotations

import logging

from geowhisper.config.settings import Settings
from geowhisper.core.geo import Location
from geowhisper.core.http import post_json
from geowhisper.domain.models import Post
from geowhisper.ingestion.zone_feed import parse_feed_rows
from geowhisper.proximity.ranking import RankedEntity, nearby

logger = logging.getLogger(__name__)


class PostFeedClient:
    def __init__(self, settings: Settings):
        self._settings = settings

    def fetch_nearby(self, center: Location, *, radius_m: float, limit: int) -> list[Post]:
        """Return the backend's posts around `center` (unranked).

        Raises:
            httpx.HTTPError: On transport errors or non-2xx status codes.
            ValueError: If the response has no `data` list.
        """
        url = f"{self._settings.feed.api_base_url.rstrip('/')}/api/posts/nearby"
        logger.info("Fetching posts within %dm of %.4f,%.4f", radius_m, center.latitude, center.longitude)
        result = post_json(
            url,
            payload={
                "latitude": center.latitude,
                "longitude": center.longitude,
                "radiusMeters": int(radius_m),
                "limit": int(limit),
            },
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )
        rows = result.get("data") if isinstance(result, dict) else None
        if not isinstance(rows, list):
            raise ValueError("Nearby posts response has no 'data' list")
        return parse_feed_rows(rows, Post.from_feed)

    def get_nearby_posts(
        self,
        center: Location,
        *,
        radius_m: float | None = None,
        limit: int | None = None,
        zone_id: str | None = None,
    ) -> list[RankedEntity[Post]]:
        """Posts within `radius_m` of `center`, nearest first, at most `limit`.

        Defaults come from `settings.proximity`. With `zone_id`, only that zone's
        posts are kept and the default cap becomes `max_posts_per_zone`.
        """
        cfg = self._settings.proximity
        radius = cfg.nearby_posts_radius_m if radius_m is None else radius_m
        if limit is None:
            limit = cfg.max_posts_per_zone if zone_id else cfg.nearby_posts_limit
        if radius <= 0 or limit <= 0:
            return []

        posts = self.fetch_nearby(center, radius_m=radius, limit=limit)
        if zone_id:
            posts = [p for p in posts if p.zone_id == zone_id]
        return nearby(center, posts, radius_m=radius, limit=limit)
