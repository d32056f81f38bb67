"""
Trail and discovery statistics.

Pure aggregation over discovery records:
- trail stats: progress, completion status and leaderboard rank for one account
- discovery stats: how early a single discovery was, where it sits in the account's
  own timeline, and how far/long it took since the previous one

Timestamps are compared timezone-aware; ties on `discovered_at` are broken by id so
results do not depend on input order.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Sequence

from spotfinder.core.geo import distance
from spotfinder.core.time import ensure_tz, seconds_between
from spotfinder.domain.models import (
    CompletionStatus,
    Discovery,
    DiscoveryStats,
    Spot,
    TrailStats,
)
from spotfinder.scoring.composite import round_half_up


def _chronological(discoveries: Iterable[Discovery]) -> list[Discovery]:
    return sorted(discoveries, key=lambda d: (ensure_tz(d.discovered_at), d.id))


def progress_percentage(discovered_count: int, total_spots: int) -> int:
    if total_spots <= 0:
        return 0
    return round_half_up(discovered_count / total_spots * 100)


def completion_status(discovered_count: int, total_spots: int) -> CompletionStatus:
    if discovered_count <= 0:
        return "not_started"
    if discovered_count >= total_spots:
        return "completed"
    return "in_progress"


def is_trail_completed(
    account_id: str, trail_id: str, discoveries: Iterable[Discovery], trail_spot_ids: Sequence[str]
) -> bool:
    found = {d.spot_id for d in discoveries if d.account_id == account_id and d.trail_id == trail_id}
    return all(spot_id in found for spot_id in trail_spot_ids)


def completion_percentage(
    account_id: str, trail_id: str, discoveries: Iterable[Discovery], trail_spot_ids: Sequence[str]
) -> int:
    """Share of the trail's spots the account has found (0 for an empty trail)."""
    found = {d.spot_id for d in discoveries if d.account_id == account_id and d.trail_id == trail_id}
    return progress_percentage(sum(1 for spot_id in set(trail_spot_ids) if spot_id in found), len(set(trail_spot_ids)))


def leaderboard(discoveries: Iterable[Discovery], trail_spot_ids: Sequence[str] | None = None) -> list[str]:
    """Account ids ordered by unique spots discovered (desc).

    Ties go to the account that reached its count first.
    """
    wanted = set(trail_spot_ids) if trail_spot_ids is not None else None
    spots_by_account: dict[str, set[str]] = defaultdict(set)
    reached_at: dict[str, datetime] = {}
    for d in _chronological(discoveries):
        if wanted is not None and d.spot_id not in wanted:
            continue
        if d.spot_id in spots_by_account[d.account_id]:
            continue
        spots_by_account[d.account_id].add(d.spot_id)
        reached_at[d.account_id] = ensure_tz(d.discovered_at)

    ranked = [a for a, found in spots_by_account.items() if found]
    ranked.sort(key=lambda a: (-len(spots_by_account[a]), reached_at[a], a))
    return ranked


def trail_stats(
    account_id: str,
    trail_id: str,
    discoveries: Iterable[Discovery],
    trail_spot_ids: Sequence[str],
) -> TrailStats:
    """Progress and rank of `account_id` on a trail.

    `discoveries` is the full discoverer population; records from other trails are ignored.
    """
    trail_discoveries = [d for d in discoveries if d.trail_id == trail_id]
    spot_ids = set(trail_spot_ids)
    mine = _chronological(d for d in trail_discoveries if d.account_id == account_id)

    discovered = len({d.spot_id for d in mine if d.spot_id in spot_ids})
    total = len(spot_ids)

    board = leaderboard(trail_discoveries, trail_spot_ids)
    rank = board.index(account_id) + 1 if account_id in board else 0

    first_at = mine[0].discovered_at if mine else None
    last_at = mine[-1].discovered_at if mine else None
    average_gap: float | None = None
    if len(mine) >= 2:
        average_gap = seconds_between(mine[0].discovered_at, mine[-1].discovered_at) / (len(mine) - 1)

    return TrailStats(
        trail_id=trail_id,
        total_spots=total,
        discovered_spots=discovered,
        discoveries_count=len(mine),
        progress_percentage=progress_percentage(discovered, total),
        completion_status=completion_status(discovered, total),
        rank=rank,
        total_discoverers=len(board),
        first_discovered_at=first_at,
        last_discovered_at=last_at,
        average_time_between_discoveries=average_gap,
    )


def discovery_stats(
    discovery: Discovery,
    all_discoveries_for_spot: Iterable[Discovery],
    user_discoveries: Iterable[Discovery],
    trail_spot_ids: Sequence[str],
    spots: Iterable[Spot],
) -> DiscoveryStats:
    """Stats for a single discovery.

    - rank: position among all discoveries of the same spot, earliest first
    - trail_position: the account's discoveries on this trail up to and including this one
    - time/distance since the account's immediately preceding discovery, when there is one
    """
    spot_discoveries = _chronological(
        d for d in all_discoveries_for_spot if d.spot_id == discovery.spot_id
    )
    spot_ids = [d.id for d in spot_discoveries]
    rank = spot_ids.index(discovery.id) + 1 if discovery.id in spot_ids else 0

    timeline = _chronological(d for d in user_discoveries if d.account_id == discovery.account_id)
    if discovery.id not in {d.id for d in timeline}:
        timeline = _chronological([*timeline, discovery])
    position = next(i for i, d in enumerate(timeline) if d.id == discovery.id)

    trail_position = sum(1 for d in timeline[: position + 1] if d.trail_id == discovery.trail_id)

    time_since: int | None = None
    distance_from: int | None = None
    if position > 0:
        previous = timeline[position - 1]
        time_since = seconds_between(previous.discovered_at, discovery.discovered_at)
        by_id = {s.id: s for s in spots}
        current_spot = by_id.get(discovery.spot_id)
        previous_spot = by_id.get(previous.spot_id)
        if current_spot and previous_spot:
            distance_from = round_half_up(distance(previous_spot.location, current_spot.location))

    return DiscoveryStats(
        discovery_id=discovery.id,
        rank=rank,
        total_discoverers=len(spot_discoveries),
        trail_position=trail_position,
        trail_total=len(trail_spot_ids),
        time_since_last_discovery=time_since,
        distance_from_last_discovery=distance_from,
    )
