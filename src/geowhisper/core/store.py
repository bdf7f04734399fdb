from __future__ import annotations

import json
import logging
from hashlib import sha256
from pathlib import Path
from typing import Protocol

from geowhisper.config.settings import Settings
from geowhisper.core.env import resolve_project_path

"""
Session-scoped key/value storage.

The zone label cache, the zone number map and the zone feed cache all live in
one session store. Stores are injected, so each store instance is one session:
tests get an isolated `MemoryStore`, the CLI gets a `FileStore` under
`.cache/geowhisper/session/` by default.

Stores themselves may raise (disk full, permissions, corrupt files). Callers
own the "best-effort" policy: a failed read is a miss, a failed write is dropped.
"""

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Dict-backed store; one instance per session."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def keys(self) -> list[str]:
        return list(self._data)


class FileStore:
    """A filesystem-backed store: one small JSON file per key."""

    def __init__(self, base_dir: Path):
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _key_path(self, key: str) -> Path:
        """Return the file path for a key (hash-based)."""
        digest = sha256(key.encode("utf-8")).hexdigest()
        return self._base_dir / f"{digest}.json"

    def get(self, key: str) -> str | None:
        path = self._key_path(key)
        if not path.exists():
            return None
        raw = json.loads(path.read_text(encoding="utf-8"))
        value = raw["value"]
        if not isinstance(value, str):
            raise ValueError(f"Stored value for {key!r} is not a string")
        return value

    def set(self, key: str, value: str) -> None:
        """Write a value to disk.

        Notes:
        - Writes via a temporary file + atomic replace to avoid partial/corrupt files.
        """
        path = self._key_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"key": key, "value": str(value)}
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)


def build_store(settings: Settings) -> KeyValueStore:
    """Build the session store configured in `settings.session`."""
    cfg = settings.session
    if cfg.backend == "memory":
        return MemoryStore()
    base = resolve_project_path(cfg.dir) / cfg.name
    logger.debug("Using file session store at %s", base)
    return FileStore(base)
