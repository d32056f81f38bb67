"""
On-demand radius sweep.

A scan senses spots around the device and returns them as transient clues. It is a
hint channel only: it never creates a Discovery. Credit is granted exclusively by the
proximity engine when the device actually walks into a spot's discovery radius.

Each call yields a new ScanEvent (random id) for history; scans are not idempotent.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from spotfinder.core.geo import distance
from spotfinder.core.ids import random_id
from spotfinder.core.spatial_index import SpatialGridIndex
from spotfinder.core.time import utc_now
from spotfinder.discovery.clues import create_clue, is_clue_eligible
from spotfinder.discovery.proximity import discovered_spot_ids
from spotfinder.domain.models import Discovery, GeoLocation, ScanClue, ScanEvent, Spot, Trail


def scanner_radius(trail: Trail | None, default_m: float = 50.0) -> float:
    """Sweep radius for a trail, falling back to `default_m` when unset."""
    if trail is not None and trail.options.scanner_radius:
        return float(trail.options.scanner_radius)
    return float(default_m)


def generate_scan_event(
    account_id: str,
    location: GeoLocation,
    spots: Iterable[Spot],
    radius_used: float,
    discoveries: Iterable[Discovery] = (),
    trail_id: str | None = None,
    *,
    now: datetime | None = None,
    index: SpatialGridIndex[Spot] | None = None,
) -> ScanEvent:
    """Sweep `radius_used` meters around `location`.

    - `successful`: at least one spot not authored by the account lies within the radius.
    - clues: spots sensed but not yet walkable-into (`discovery_radius < d <= radius_used`),
      excluding the account's own and already-discovered spots.
    """
    spots = list(spots)
    discovered = set(discovered_spot_ids(account_id, discoveries, trail_id))

    if index is not None:
        allowed = {s.id for s in spots}
        in_range = [(s, d) for s, d in index.query_within(location, radius_used) if s.id in allowed]
    else:
        in_range = []
        for s in spots:
            d = distance(location, s.location)
            if d <= radius_used:
                in_range.append((s, d))

    in_range = [(s, d) for s, d in in_range if s.created_by != account_id]

    clues: list[ScanClue] = [
        create_clue(s, trail_id, "scanEvent")
        for s, d in in_range
        if d > s.discovery_radius and s.id not in discovered and is_clue_eligible(s, account_id)
    ]

    return ScanEvent(
        id=random_id(),
        account_id=account_id,
        trail_id=trail_id,
        location=location,
        radius_used=radius_used,
        successful=len(in_range) > 0,
        scanned_at=now or utc_now(),
        clues=clues,
    )
