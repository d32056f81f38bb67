"""
Proximity discovery (location update -> new discoveries).

Everything here is pure: the caller supplies an immutable snapshot of the trail, its
spots and the discovery history, and persists whatever comes back. Idempotency under
duplicate or racing location pings comes from deterministic discovery ids, not from
deduplication here.

Policy:
- `free`: every undiscovered spot whose discovery radius contains the device is
  discovered in the same update.
- `sequence`: only `trail.spot_ids[n]` is eligible, where `n` is the number of
  discoveries the account already holds on this trail.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from spotfinder.core.geo import distance
from spotfinder.core.ids import discovery_id
from spotfinder.core.spatial_index import SpatialGridIndex
from spotfinder.core.time import ensure_tz, utc_now
from spotfinder.discovery.snap import discovery_snap, snap_range
from spotfinder.domain.errors import SpotNotFoundError
from spotfinder.domain.models import (
    Discovery,
    DiscoveryLocationRecord,
    DiscoverySpot,
    GeoLocation,
    Spot,
    Trail,
)

logger = logging.getLogger(__name__)


def account_discoveries(
    account_id: str, discoveries: Iterable[Discovery], trail_id: str | None = None
) -> list[Discovery]:
    """Discoveries owned by `account_id`, optionally restricted to one trail."""
    return [
        d
        for d in discoveries
        if d.account_id == account_id and (trail_id is None or d.trail_id == trail_id)
    ]


def discovered_spot_ids(
    account_id: str, discoveries: Iterable[Discovery], trail_id: str | None = None
) -> list[str]:
    return [d.spot_id for d in account_discoveries(account_id, discoveries, trail_id)]


def discovered_spots(
    account_id: str,
    discoveries: Iterable[Discovery],
    spots: Iterable[Spot],
    trail_id: str | None = None,
) -> list[DiscoverySpot]:
    """Discovered spots joined with their discovery, oldest first.

    Raises:
        SpotNotFoundError: If a discovery references a spot missing from `spots`.
    """
    by_id = {s.id: s for s in spots}
    ordered = sorted(
        account_discoveries(account_id, discoveries, trail_id),
        key=lambda d: ensure_tz(d.discovered_at),
    )
    out: list[DiscoverySpot] = []
    for d in ordered:
        spot = by_id.get(d.spot_id)
        if spot is None:
            raise SpotNotFoundError(
                f"Spot not found for discovery {d.id}", spot_id=d.spot_id, discovery_id=d.id
            )
        out.append(DiscoverySpot(spot=spot, discovery_id=d.id, discovered_at=d.discovered_at))
    return out


def create_discovery(
    account_id: str,
    spot_id: str,
    trail_id: str,
    *,
    discovered_at: datetime | None = None,
    scan_event_id: str | None = None,
) -> Discovery:
    return Discovery(
        id=discovery_id(account_id, spot_id, trail_id),
        account_id=account_id,
        spot_id=spot_id,
        trail_id=trail_id,
        discovered_at=discovered_at or utc_now(),
        scan_event_id=scan_event_id,
    )


def claimable_spots(account_id: str, spots: Iterable[Spot], exclude_ids: Iterable[str] = ()) -> list[Spot]:
    """Spots the account may still claim: not authored by it and not in `exclude_ids`."""
    excluded = set(exclude_ids)
    return [s for s in spots if s.created_by != account_id and s.id not in excluded]


def find_new_discoveries(
    account_id: str,
    location: GeoLocation,
    spots: Iterable[Spot],
    discoveries: Iterable[Discovery],
    trail: Trail,
    *,
    now: datetime | None = None,
) -> list[Discovery]:
    """New discoveries produced by the account standing at `location`.

    An empty list is the normal "nothing in range" outcome.
    """
    history = account_discoveries(account_id, discoveries, trail.id)
    candidates = claimable_spots(account_id, spots, (d.spot_id for d in history))

    in_range = [s for s in candidates if distance(location, s.location) <= s.discovery_radius]
    if not in_range:
        return []

    if trail.options.discovery_mode == "sequence":
        next_index = len(history)
        if next_index >= len(trail.spot_ids):
            return []
        next_spot_id = trail.spot_ids[next_index]
        in_range = [s for s in in_range if s.id == next_spot_id]

    discovered_at = now or utc_now()
    return [create_discovery(account_id, s.id, trail.id, discovered_at=discovered_at) for s in in_range]


def process_location_update(
    account_id: str,
    location: GeoLocation,
    discoveries: Iterable[Discovery],
    spots: Iterable[Spot],
    trail: Trail,
    *,
    direction: float | None = None,
    default_snap_range_m: float = 1000.0,
    now: datetime | None = None,
    index: SpatialGridIndex[Spot] | None = None,
) -> DiscoveryLocationRecord:
    """Discoveries plus the refreshed snap hint for one location update."""
    discoveries = list(discoveries)
    spots = list(spots)
    now = now or utc_now()

    new_discoveries = find_new_discoveries(account_id, location, spots, discoveries, trail, now=now)
    explored = discovered_spot_ids(account_id, discoveries, trail.id)
    explored.extend(d.spot_id for d in new_discoveries)

    snap = discovery_snap(
        location,
        claimable_spots(account_id, spots),
        explored,
        snap_range(trail, default_snap_range_m),
        index=index,
    )

    if new_discoveries:
        logger.debug(
            "account %s discovered %d spot(s) on trail %s",
            account_id,
            len(new_discoveries),
            trail.id,
        )

    return DiscoveryLocationRecord(
        location=location,
        direction=direction,
        discoveries=new_discoveries,
        snap=snap,
        created_at=now,
    )
