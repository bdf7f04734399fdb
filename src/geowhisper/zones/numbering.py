"""
Session-stable zone numbers ("Zone 1", "Zone 2", ...).

The first zone seen in a session becomes 1, the next new one 2, and so on.
Numbers are never reused or reassigned. The map is stored as one JSON object
under `gw_tower_index_map_v1`; two sessions may number the same zone
differently.
"""

from __future__ import annotations

import json
import logging

from geowhisper.core.store import KeyValueStore

logger = logging.getLogger(__name__)

INDEX_MAP_KEY = "gw_tower_index_map_v1"


def _parse_index_map(raw: str | None) -> dict[str, int]:
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("zone index map is not a JSON object")
    out: dict[str, int] = {}
    for zone_id, number in data.items():
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise ValueError(f"invalid zone number for {zone_id!r}: {number!r}")
        out[str(zone_id)] = number
    return out


class ZoneNumbering:
    def __init__(self, store: KeyValueStore):
        self._store = store

    def get_zone_number(self, zone_id: str | None) -> str:
        """Return "Zone {n}" for `zone_id`, assigning the next number on first sight."""
        if not zone_id:
            return "Zone"

        try:
            index_map = _parse_index_map(self._store.get(INDEX_MAP_KEY))
        except Exception as exc:
            logger.debug("Zone index map unreadable, using short id: %s", exc)
            return f"Zone {zone_id[:6]}"

        existing = index_map.get(zone_id)
        if existing is not None:
            return f"Zone {existing}"

        # max+1 equals size+1 for any map built here, and stays unique if entries go missing.
        number = max(index_map.values(), default=0) + 1
        index_map[zone_id] = number
        try:
            self._store.set(INDEX_MAP_KEY, json.dumps(index_map))
        except Exception as exc:
            logger.debug("Zone index map write failed for %s: %s", zone_id, exc)
        return f"Zone {number}"
