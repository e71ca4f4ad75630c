# src/fultramaps/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/fultramaps/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `HERE_API_KEY`, `FULTRAMAPS_PROVIDER`)
- an external YAML file via `FULTRAMAPS_CONFIG_PATH`

Design rule:
- Provider choice and the polyline wire format live in YAML, not in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from fultramaps.core.env import load_dotenv_if_present
from fultramaps.core.polyline import CodecName

ProviderName = Literal["mock", "google", "here"]

# Wire format each provider speaks when no codec is configured explicitly.
NATIVE_CODECS: dict[str, CodecName] = {"google": "google", "here": "flexible", "mock": "google"}


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `fultramaps.config`."""
    text = resources.files("fultramaps.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "Fultra Maps"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"
    language: str = "es"
    country_code: str = "mx"


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/fultramaps"
    default_ttl_seconds: int = 60 * 60 * 24


class RegionSettings(BaseModel):
    lat: float = Field(19.4326, ge=-90, le=90)
    lon: float = Field(-99.1332, ge=-180, le=180)
    lat_delta: float = Field(0.0922, ge=0)
    lon_delta: float = Field(0.0421, ge=0)


class RegionFitSettings(BaseModel):
    padding: float = Field(1.2, gt=0)
    min_delta: float = Field(0.01, ge=0)


class MockProviderSettings(BaseModel):
    speed_m_per_min: float = Field(500, gt=0)
    seed: int | None = None


class GoogleProviderSettings(BaseModel):
    geocode_url: str
    directions_url: str
    autocomplete_url: str
    place_details_url: str
    api_key: str | None = None


class HereSearchSettings(BaseModel):
    limit: int = Field(10, ge=1, le=100)
    lang: str = "es"
    country: str = "MEX"


class HereProviderSettings(BaseModel):
    geocode_url: str
    reverse_geocode_url: str
    autosuggest_url: str
    lookup_url: str
    routing_url: str
    search: HereSearchSettings = Field(default_factory=HereSearchSettings)
    api_key: str | None = None


class MapsSettings(BaseModel):
    provider: ProviderName = "mock"
    polyline_codec: CodecName | None = None
    flexible_precision: int = Field(5, ge=0, le=15)
    default_region: RegionSettings = Field(default_factory=RegionSettings)
    region_fit: RegionFitSettings = Field(default_factory=RegionFitSettings)
    max_requests_per_minute: float = Field(0, ge=0)
    geocode_cache_ttl_seconds: int = 60 * 60 * 24 * 7
    directions_cache_ttl_seconds: int = 60 * 15
    mock: MockProviderSettings = Field(default_factory=MockProviderSettings)
    google: GoogleProviderSettings
    here: HereProviderSettings

    def resolved_codec(self) -> CodecName:
        """Configured polyline codec, or the provider's native wire format."""
        return self.polyline_codec or NATIVE_CODECS[self.provider]


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    maps: MapsSettings


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)
    cache_dir = os.getenv("FULTRAMAPS_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    log_level = os.getenv("FULTRAMAPS_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    maps = data.setdefault("maps", {})
    provider = os.getenv("FULTRAMAPS_PROVIDER")
    if provider:
        maps["provider"] = provider.strip().lower()
    codec = os.getenv("FULTRAMAPS_POLYLINE_CODEC")
    if codec:
        maps["polyline_codec"] = codec.strip().lower()

    google_key = os.getenv("GOOGLE_MAPS_API_KEY")
    if google_key:
        maps.setdefault("google", {})["api_key"] = google_key
    here_key = os.getenv("HERE_API_KEY")
    if here_key:
        maps.setdefault("here", {})["api_key"] = here_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("FULTRAMAPS_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
