# src/geowhisper/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/geowhisper/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `MAPBOX_ACCESS_TOKEN`, `GEOWHISPER_API_BASE_URL`)
- an external YAML file via `GEOWHISPER_CONFIG_PATH`

Design rule:
- Radii, limits and TTLs live in YAML, not hard-coded in the ranking code.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal
from geowhisper.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `geowhisper.config`."""
    text = resources.files("geowhisper.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "GeoWhisper"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class SessionSettings(BaseModel):
    backend: Literal["memory", "file"] = "file"
    dir: str = ".cache/geowhisper"
    name: str = "session"


class GeocodingSettings(BaseModel):
    base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    types: list[str] = Field(
        default_factory=lambda: ["place", "locality", "neighborhood", "address"]
    )
    limit: int = Field(1, ge=1)
    access_token: str | None = None


class FeedSettings(BaseModel):
    api_base_url: str = "http://localhost:8080"
    cluster_radius_m: int = Field(50, ge=0)
    max_posts: int = Field(1000, ge=0)
    cache_ttl_seconds: int = Field(10 * 60, ge=0)


class ProximitySettings(BaseModel):
    nearby_posts_radius_m: float = Field(500, ge=0)
    nearby_posts_limit: int = Field(20, ge=0)
    nearby_zones_radius_m: float = Field(2000, ge=0)
    max_posts_per_zone: int = Field(200, ge=0)
    hot_zones_count: int = Field(5, ge=0)
    hot_zones_radius_m: float = Field(2000, ge=0)
    current_zone_radius_m: float = Field(500, ge=0)
    grid_cell_size_m: float = Field(1200, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    proximity: ProximitySettings = Field(default_factory=ProximitySettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)
    session_dir = os.getenv("GEOWHISPER_SESSION_DIR")
    if session_dir:
        data.setdefault("session", {})["dir"] = session_dir

    log_level = os.getenv("GEOWHISPER_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    api_base_url = os.getenv("GEOWHISPER_API_BASE_URL")
    if api_base_url:
        data.setdefault("feed", {})["api_base_url"] = api_base_url

    token = os.getenv("MAPBOX_ACCESS_TOKEN")
    if token:
        data.setdefault("geocoding", {})["access_token"] = token

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("GEOWHISPER_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
