"""
Discovery snap: a directional "warmer/colder" hint toward the nearest unclaimed spot.

Intensity falls off linearly from 1 at the spot to 0 at the trail's snap range. The
hint line drawn from it runs between the player's own positions and never points
at (or contains) the target location.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from spotfinder.core.geo import distance
from spotfinder.core.spatial_index import SpatialGridIndex
from spotfinder.domain.models import DiscoverySnap, GeoLocation, Spot, Trail
from spotfinder.scoring.composite import clamp01


@dataclass(frozen=True)
class SnapLine:
    start: GeoLocation
    end: GeoLocation
    intensity: float


def snap_range(trail: Trail, default_m: float = 1000.0) -> float:
    """Snap range for a trail: snap radius, else scanner radius, else `default_m`."""
    return float(trail.options.snap_radius or trail.options.scanner_radius or default_m)


def proximity_intensity(distance_m: float, max_range_m: float) -> float:
    """Linear falloff: 1 at zero distance, 0 at or beyond `max_range_m`."""
    if max_range_m <= 0 or distance_m >= max_range_m:
        return 0.0
    if distance_m <= 0:
        return 1.0
    return clamp01(1 - distance_m / max_range_m)


def discovery_snap(
    location: GeoLocation,
    spots: Iterable[Spot],
    explored_spot_ids: Iterable[str],
    max_range_m: float,
    *,
    index: SpatialGridIndex[Spot] | None = None,
) -> DiscoverySnap:
    """Snap toward the nearest unexplored spot within `max_range_m`.

    `spots` must already exclude spots authored by the account. Returns a zero snap
    when nothing unexplored is in range.
    """
    explored = set(explored_spot_ids)
    nearest: tuple[Spot, float] | None = None

    if index is not None:
        allowed = {s.id for s in spots}
        for spot, d in index.query_within(location, max_range_m):
            if spot.id in allowed and spot.id not in explored:
                nearest = (spot, d)
                break
    else:
        for spot in spots:
            if spot.id in explored:
                continue
            d = distance(location, spot.location)
            if d <= max_range_m and (nearest is None or d < nearest[1]):
                nearest = (spot, d)

    if nearest is None:
        return DiscoverySnap(intensity=0.0, distance=0.0)

    d = nearest[1]
    return DiscoverySnap(intensity=proximity_intensity(d, max_range_m), distance=d)


def snap_hint_line(
    current: GeoLocation,
    intensity: float,
    *,
    previous: GeoLocation | None = None,
    last_discovered: GeoLocation | None = None,
) -> SnapLine:
    """Hint line from the last known position to the current one, scaled by intensity."""
    intensity = clamp01(intensity)
    if intensity == 0:
        return SnapLine(start=current, end=current, intensity=0.0)
    start = previous or last_discovered or current
    return SnapLine(start=start, end=current, intensity=intensity)
