# src/nearneeds/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/nearneeds/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `NEARNEEDS_CONFIG_PATH`
- environment variables (e.g., `NEARNEEDS_BACKEND_URL`, `NEARNEEDS_BACKEND_ANON_KEY`)

Design rule:
- Tuning knobs (timeouts, radius options, refresh interval) live in YAML, not in workflow code.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from nearneeds.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `nearneeds.config`."""
    text = resources.files("nearneeds.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "NearNeeds"
    timezone: str = "UTC"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"
    quiet_loggers: dict[str, str] = Field(
        default_factory=lambda: {"httpx": "WARNING", "httpcore": "WARNING", "uvicorn.access": "WARNING"}
    )


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/nearneeds"
    default_ttl_seconds: int = 60 * 60 * 24 * 30


class BackendSettings(BaseModel):
    url: str = ""
    anon_key: str | None = None
    table: str = "tasks"
    columns: list[str] = Field(default_factory=lambda: ["id", "text", "created_at", "lat", "lng", "owner"])


class StaticPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class LocationPolicySettings(BaseModel):
    high_accuracy: bool = True
    timeout_seconds: float = Field(15, gt=0)
    max_age_seconds: float = Field(0, ge=0)


class LocationSettings(BaseModel):
    provider: Literal["none", "static", "ip"] = "none"
    static: StaticPoint | None = None
    ip_lookup_url: str = "https://ipapi.co/json/"
    ambient: LocationPolicySettings = Field(
        default_factory=lambda: LocationPolicySettings(timeout_seconds=15, max_age_seconds=300)
    )
    fresh: LocationPolicySettings = Field(
        default_factory=lambda: LocationPolicySettings(timeout_seconds=8, max_age_seconds=0)
    )

    @model_validator(mode="after")
    def _static_needs_point(self) -> "LocationSettings":
        if self.provider == "static" and self.static is None:
            raise ValueError("location.static must be set when location.provider is 'static'")
        return self


class FeedSettings(BaseModel):
    refresh_interval_seconds: float = Field(5, gt=0)


class BoardSettings(BaseModel):
    radius_options_km: list[int] = Field(default_factory=lambda: [1, 3, 5, 10, 25, 50, 100, 200, 500])
    default_radius_km: int = 5
    min_text_length: int = Field(3, ge=1)
    require_session_to_publish: bool = True
    confirm_delete: bool = True

    @model_validator(mode="after")
    def _default_in_options(self) -> "BoardSettings":
        if not self.radius_options_km:
            raise ValueError("board.radius_options_km must not be empty")
        if self.default_radius_km not in self.radius_options_km:
            raise ValueError("board.default_radius_km must be one of board.radius_options_km")
        return self


class MapZoomLevel(BaseModel):
    min_radius_km: float = Field(..., ge=0)
    zoom: int = Field(..., ge=0, le=20)


class MapSettings(BaseModel):
    tile_url: str = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    attribution: str = "&copy; OpenStreetMap contributors"
    default_zoom: int = 13
    zoom_levels: list[MapZoomLevel] = Field(
        default_factory=lambda: [
            MapZoomLevel(min_radius_km=100, zoom=7),
            MapZoomLevel(min_radius_km=25, zoom=10),
        ]
    )


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    board: BoardSettings = Field(default_factory=BoardSettings)
    map: MapSettings = Field(default_factory=MapSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    backend_url = os.getenv("NEARNEEDS_BACKEND_URL")
    if backend_url:
        data.setdefault("backend", {})["url"] = backend_url

    anon_key = os.getenv("NEARNEEDS_BACKEND_ANON_KEY")
    if anon_key:
        data.setdefault("backend", {})["anon_key"] = anon_key

    cache_dir = os.getenv("NEARNEEDS_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    log_level = os.getenv("NEARNEEDS_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    provider = os.getenv("NEARNEEDS_LOCATION_PROVIDER")
    if provider:
        data.setdefault("location", {})["provider"] = provider

    static_lat = os.getenv("NEARNEEDS_STATIC_LAT")
    static_lng = os.getenv("NEARNEEDS_STATIC_LNG")
    if static_lat and static_lng:
        data.setdefault("location", {})["static"] = {"lat": static_lat, "lng": static_lng}

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("NEARNEEDS_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
