"""
Domain models (Pydantic).

These types are the contract between the data-fetch layer (zone feed, posts)
and the zone engine (labels, numbering, proximity ranking).

Zone ids are issued by the backend's clustering; nothing in this package mints
one. Coordinates reuse the frozen `Location` value type from `core.geo`.
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from geowhisper.core.geo import Location


class Located(Protocol):
    """Anything rankable by distance: exposes an identifier and a location."""

    @property
    def id(self) -> str: ...

    @property
    def location(self) -> Location | None: ...


def _feed_location(row: dict[str, Any]) -> dict[str, Any] | None:
    lat = row.get("latitude")
    lon = row.get("longitude")
    if lat is None or lon is None:
        return None
    return {"latitude": lat, "longitude": lon}


class Zone(BaseModel):
    """A backend-assigned logical cell ("tower"). Location may be unknown."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    location: Location | None = None
    post_count: int = Field(0, ge=0)

    @classmethod
    def from_feed(cls, row: dict[str, Any]) -> "Zone":
        """Build a zone from a backend row (`towerId`, `latitude`, `longitude`, `postCount`).

        Raises:
            pydantic.ValidationError: On non-numeric coordinates or a non-integral count.
        """
        return cls.model_validate(
            {
                "id": str(row.get("towerId") or ""),
                "location": _feed_location(row),
                "post_count": row.get("postCount") or 0,
            }
        )


class Post(BaseModel):
    """A geo-tagged post."""

    model_config = ConfigDict(frozen=True)

    id: str
    location: Location
    zone_id: str | None = None
    content: str | None = None

    @classmethod
    def from_feed(cls, row: dict[str, Any]) -> "Post":
        """Build a post from a backend row (`id`, `latitude`, `longitude`, `towerId`, `content`)."""
        return cls.model_validate(
            {
                "id": str(row.get("id") or ""),
                "location": _feed_location(row),
                "zone_id": None if row.get("towerId") is None else str(row.get("towerId")),
                "content": row.get("content"),
            }
        )
