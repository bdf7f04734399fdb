"""
Reverse-geocoding client (Mapbox Geocoding v5).

This module is responsible only for:
- building the reverse lookup request for a coordinate,
- returning the raw feature collection.

It does not pick a label or touch the session cache; see
`geowhisper.zones.labels` for that.
"""

from __future__ import annotations

import logging
from typing import Any

from geowhisper.config.settings import Settings
from geowhisper.core.geo import Location
from geowhisper.core.http import get_json_async

logger = logging.getLogger(__name__)


class MapboxGeocoder:
    """Looks up place names for coordinates."""

    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def has_token(self) -> bool:
        return bool(self._settings.geocoding.access_token)

    def _reverse_url(self, location: Location) -> str:
        base = self._settings.geocoding.base_url.rstrip("/")
        # Mapbox takes "lon,lat", not "lat,lon".
        return f"{base}/{location.longitude},{location.latitude}.json"

    async def reverse(self, location: Location) -> dict[str, Any]:
        """Return the raw feature collection for `location`.

        Raises:
            ValueError: If no token is configured or the body is not a JSON object.
            httpx.HTTPError: On transport errors, timeouts or non-2xx status codes.
        """
        cfg = self._settings.geocoding
        if not cfg.access_token:
            raise ValueError("geocoding.access_token is not configured")

        params = {
            "types": ",".join(cfg.types),
            "limit": cfg.limit,
            "access_token": cfg.access_token,
        }
        logger.debug("Reverse geocoding lat=%.4f lon=%.4f", location.latitude, location.longitude)
        payload = await get_json_async(
            self._reverse_url(location),
            params=params,
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )
        if not isinstance(payload, dict):
            raise ValueError("Geocoding response is not a JSON object")
        return payload
