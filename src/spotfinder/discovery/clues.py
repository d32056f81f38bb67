"""
Preview clues for undiscovered spots.

A clue carries only what is needed to draw a faint marker: spot id, location,
discovery radius and, optionally, the micro thumbnail of the spot's blurred image.
Full images and descriptions never appear on a clue. Clues are return values only;
nothing here is persisted.
"""

from __future__ import annotations

from typing import Iterable, Literal

from spotfinder.core.geo import is_in_bounds
from spotfinder.discovery.proximity import discovered_spot_ids
from spotfinder.domain.models import (
    Discovery,
    GeoBoundary,
    PreviewClue,
    ScanClue,
    Spot,
    Trail,
)

_BLURRED_SUFFIX = "-blurred"
_MICRO_SUFFIX = "-micro"


def micro_image_path(blurred_path: str | None) -> str | None:
    """Micro thumbnail path for a blurred image path.

    `abc-blurred.webp` -> `abc-micro.webp`; a path without the blurred suffix gets the
    micro suffix inserted before its extension. The original asset is never referenced.
    """
    if not blurred_path:
        return None
    base, dot, ext = blurred_path.rpartition(".")
    if not dot or "/" in ext:
        base, ext = blurred_path, ""
    if base.endswith(_BLURRED_SUFFIX):
        base = base[: -len(_BLURRED_SUFFIX)]
    return f"{base}{_MICRO_SUFFIX}.{ext}" if ext else f"{base}{_MICRO_SUFFIX}"


def is_clue_eligible(spot: Spot, account_id: str) -> bool:
    """Only preview-visibility spots authored by someone else may surface as clues."""
    return spot.visibility == "preview" and spot.created_by != account_id


def create_clue(
    spot: Spot, trail_id: str | None, source: Literal["preview", "scanEvent"]
) -> PreviewClue | ScanClue:
    fields = dict(
        spot_id=spot.id,
        trail_id=trail_id,
        location=spot.location,
        discovery_radius=spot.discovery_radius,
        degraded_image=micro_image_path(spot.blurred_image_blob_path),
    )
    if source == "scanEvent":
        return ScanClue(**fields)
    return PreviewClue(**fields)


def preview_clues(
    account_id: str,
    trail: Trail,
    discoveries: Iterable[Discovery],
    spots: Iterable[Spot],
    viewport: GeoBoundary | None = None,
) -> list[PreviewClue]:
    """Clues for the account's undiscovered preview spots, in trail order.

    Empty unless the trail runs in `preview` mode. With a viewport, clues outside it
    are dropped so the full layout is not exposed off-screen.
    """
    if trail.options.preview_mode != "preview":
        return []

    discovered = set(discovered_spot_ids(account_id, discoveries, trail.id))
    by_id = {s.id: s for s in spots}

    clues: list[PreviewClue] = []
    for spot_id in trail.spot_ids:
        if spot_id in discovered:
            continue
        spot = by_id.get(spot_id)
        if spot is None or not is_clue_eligible(spot, account_id):
            continue
        if viewport is not None and not is_in_bounds(spot.location, viewport):
            continue
        clues.append(create_clue(spot, trail.id, "preview"))
    return clues
