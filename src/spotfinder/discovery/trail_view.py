"""Composite "discovery trail" view for the presentation layer."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from spotfinder.core.time import utc_now
from spotfinder.discovery.clues import preview_clues
from spotfinder.discovery.proximity import account_discoveries, discovered_spots
from spotfinder.domain.models import Discovery, DiscoveryTrail, GeoBoundary, Spot, Trail


def create_discovery_trail(
    account_id: str,
    trail: Trail,
    discoveries: Iterable[Discovery],
    spots: Iterable[Spot],
    *,
    viewport: GeoBoundary | None = None,
    now: datetime | None = None,
) -> DiscoveryTrail:
    discoveries = list(discoveries)
    spots = list(spots)
    return DiscoveryTrail(
        trail=trail,
        discovered_spots=discovered_spots(account_id, discoveries, spots, trail.id),
        preview_clues=preview_clues(account_id, trail, discoveries, spots, viewport),
        discoveries=account_discoveries(account_id, discoveries, trail.id),
        created_at=now or utc_now(),
    )
