"""
Trail catalog loader.

The catalog is a local JSON file holding the trails, spots and (optionally) the
discovery history a simulation starts from:

    {"trails": [...], "spots": [...], "discoveries": [...], "scan_events": [...]}

A trail may omit its `boundary`; it is then derived from the trail's spots, padded
by `discovery.spot_bounding_box_padding_m`.

We validate it into typed Pydantic models so the engines can assume a consistent
shape, and wire it into in-memory stores for the CLI and tests.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter

from spotfinder.application import DiscoveryApplication
from spotfinder.config.settings import Settings, get_settings
from spotfinder.core.env import resolve_data_path
from spotfinder.core.geo import bounding_box
from spotfinder.domain.models import Discovery, ScanEvent, Spot, Trail
from spotfinder.events.channel import EventChannel
from spotfinder.storage.memory import InMemoryStore


class Catalog(BaseModel):
    trails: list[Trail] = Field(default_factory=list)
    spots: list[Spot] = Field(default_factory=list)
    discoveries: list[Discovery] = Field(default_factory=list)
    scan_events: list[ScanEvent] = Field(default_factory=list)


_CATALOG_ADAPTER = TypeAdapter(Catalog)
_SPOTS_ADAPTER = TypeAdapter(list[Spot])


def _fill_trail_boundaries(payload: dict[str, Any], padding_m: float) -> None:
    trails = payload.get("trails") or []
    if all(isinstance(t, dict) and t.get("boundary") is not None for t in trails):
        return
    locations = {s.id: s.location for s in _SPOTS_ADAPTER.validate_python(payload.get("spots") or [])}
    for trail in trails:
        if not isinstance(trail, dict) or trail.get("boundary") is not None:
            continue
        points = [locations[spot_id] for spot_id in trail.get("spot_ids") or [] if spot_id in locations]
        trail["boundary"] = bounding_box(points, padding_m).model_dump()


def load_catalog(path: str | Path, *, settings: Settings | None = None) -> Catalog:
    """Load and validate a catalog JSON file (relative paths resolve against the data dir)."""
    resolved = resolve_data_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid catalog root in {resolved}; expected a JSON object.")
    _fill_trail_boundaries(payload, (settings or get_settings()).discovery.spot_bounding_box_padding_m)
    return _CATALOG_ADAPTER.validate_python(payload)


def save_catalog(catalog: Catalog, path: str | Path) -> Path:
    """Write a catalog back to disk. Scan clues are never serialized."""
    resolved = resolve_data_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    resolved.write_text(
        json.dumps(catalog.model_dump(mode="json"), ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    return resolved


def build_application(
    catalog: Catalog,
    *,
    settings: Settings | None = None,
    channel: EventChannel | None = None,
) -> DiscoveryApplication:
    return DiscoveryApplication(
        trails=InMemoryStore(catalog.trails),
        spots=InMemoryStore(catalog.spots),
        discoveries=InMemoryStore(catalog.discoveries),
        scan_events=InMemoryStore(catalog.scan_events),
        channel=channel,
        settings=settings,
    )


def snapshot_catalog(app: DiscoveryApplication) -> Catalog:
    """Current store contents as a catalog (e.g. to persist a simulation run)."""
    return Catalog(
        trails=app.trails.list(),
        spots=app.spots.list(),
        discoveries=app.discoveries.list(),
        scan_events=app.scan_events.list(),
    )
