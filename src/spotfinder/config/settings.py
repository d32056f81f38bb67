# src/spotfinder/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/spotfinder/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `SPOTFINDER_CONFIG_PATH`
- environment variables (`SPOTFINDER_LOG_LEVEL`)

Tuning knobs (default radii, zoom clamps, fallback constants) live in YAML, not in
business logic. The engines take these values as plain arguments; the application
layer reads them from here.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from spotfinder.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `spotfinder.config`."""
    text = resources.files("spotfinder.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "spotfinder"
    log_level: str = "INFO"


class DiscoverySettings(BaseModel):
    default_scanner_radius_m: float = Field(50, gt=0)
    default_snap_range_m: float = Field(1000, gt=0)
    spot_bounding_box_padding_m: float = Field(50, ge=0)


class ZoomFallback(BaseModel):
    min: float = Field(0.8, gt=0)
    max: float = Field(1.5, gt=0)

    @model_validator(mode="after")
    def _validate_order(self) -> "ZoomFallback":
        if self.max < self.min:
            raise ValueError("degenerate_zoom_limits.max must be >= min")
        return self


class MapSettings(BaseModel):
    device_viewport_radius_m: float = Field(1000, gt=0)
    default_padding_m: float = Field(100, ge=0)
    adaptive_padding_factor: float = Field(1.5, gt=0)
    adaptive_min_radius_m: float = Field(200, gt=0)
    max_detail_m: float = Field(50, gt=0)
    zoom_screen_padding: float = Field(0.95, gt=0, le=1)
    zoom_scale_floor: float = Field(0.5, gt=0)
    zoom_scale_ceiling: float = Field(3.0, gt=0)
    zoom_max_floor: float = Field(1.0, gt=0)
    degenerate_zoom_limits: ZoomFallback = Field(default_factory=ZoomFallback)
    canvas_size_px: int = Field(1000, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    map: MapSettings = Field(default_factory=MapSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload."""
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("SPOTFINDER_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("SPOTFINDER_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
