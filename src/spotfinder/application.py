"""
Discovery orchestration.

`DiscoveryApplication` is the seam between the pure engines and their collaborators:
- resolves the caller's account and the trail/spot snapshot from the stores
- runs the engines (proximity, clues, scan, stats)
- persists the records they return (`Discovery`, `ScanEvent`)
- broadcasts what changed on the event channel

Every public method returns a `Result`. Orchestration problems (missing account,
unknown trail/spot/discovery) become `Result(success=False, error=...)` with a stable
code; anything else is a bug and propagates.

Updates for one (account, trail) pair are expected to arrive one at a time so each
call sees a consistent discovery history. Racing duplicates are still harmless for
discoveries because their ids are deterministic and the store's create is idempotent.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, TypeVar

from spotfinder.config.settings import Settings, get_settings
from spotfinder.core.spatial_index import SpatialGridIndex
from spotfinder.core.time import ensure_tz
from spotfinder.discovery.proximity import account_discoveries, process_location_update
from spotfinder.discovery.scan import generate_scan_event, scanner_radius
from spotfinder.discovery.trail_view import create_discovery_trail
from spotfinder.domain.errors import (
    AccountRequiredError,
    DiscoveryNotFoundError,
    SpotfinderError,
    TrailHasNoSpotsError,
    TrailNotFoundError,
)
from spotfinder.domain.models import (
    AccountContext,
    Discovery,
    DiscoveryLocationRecord,
    DiscoveryStats,
    DiscoveryTrail,
    GeoBoundary,
    GeoLocation,
    Result,
    ScanEvent,
    Spot,
    Trail,
    TrailStats,
)
from spotfinder.events.channel import (
    DISCOVERIES_CREATED,
    LOCATION_CHANGED,
    SCAN_RECORDED,
    EventChannel,
)
from spotfinder.stats.trail_stats import discovery_stats, trail_stats
from spotfinder.storage.memory import Store

logger = logging.getLogger(__name__)

R = TypeVar("R")


class DiscoveryApplication:
    def __init__(
        self,
        *,
        trails: Store[Trail],
        spots: Store[Spot],
        discoveries: Store[Discovery],
        scan_events: Store[ScanEvent],
        channel: EventChannel | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.trails = trails
        self.spots = spots
        self.discoveries = discoveries
        self.scan_events = scan_events
        self.channel = channel or EventChannel()
        self.settings = settings or get_settings()
        self._indexes: dict[str, tuple[tuple[str, ...], SpatialGridIndex[Spot]]] = {}

    # --- helpers -----------------------------------------------------------------

    def _run(self, operation: str, fn: Callable[[], R]) -> Result[R]:
        try:
            return Result.ok(fn())
        except SpotfinderError as exc:
            logger.warning("%s failed: %s (%s)", operation, exc.code, exc.message)
            return Result.fail(exc.to_info())

    @staticmethod
    def _account_id(context: AccountContext) -> str:
        if not context.account_id:
            raise AccountRequiredError("An account id is required")
        return context.account_id

    def _trail(self, trail_id: str) -> Trail:
        trail = self.trails.get(trail_id)
        if trail is None:
            raise TrailNotFoundError(f"Trail not found: {trail_id}", trail_id=trail_id)
        return trail

    def _trail_spots(self, trail: Trail) -> list[Spot]:
        # Trail spot lists may hold stale ids for deleted spots; those are skipped.
        spots = []
        for spot_id in trail.spot_ids:
            spot = self.spots.get(spot_id)
            if spot is not None:
                spots.append(spot)
        return spots

    def _spot_index(self, trail: Trail, spots: list[Spot]) -> SpatialGridIndex[Spot]:
        key = tuple(s.id for s in spots)
        cached = self._indexes.get(trail.id)
        if cached is not None and cached[0] == key:
            return cached[1]
        index = SpatialGridIndex(spots, get_location=lambda s: s.location)
        self._indexes[trail.id] = (key, index)
        return index

    # --- operations ---------------------------------------------------------------

    def process_location(
        self,
        context: AccountContext,
        trail_id: str,
        location: GeoLocation,
        *,
        direction: float | None = None,
        now: datetime | None = None,
    ) -> Result[DiscoveryLocationRecord]:
        """Run a location update: create discoveries, persist them and refresh the snap."""

        def op() -> DiscoveryLocationRecord:
            account_id = self._account_id(context)
            trail = self._trail(trail_id)
            spots = self._trail_spots(trail)
            record = process_location_update(
                account_id,
                location,
                self.discoveries.list(),
                spots,
                trail,
                direction=direction,
                default_snap_range_m=self.settings.discovery.default_snap_range_m,
                now=now,
                index=self._spot_index(trail, spots),
            )
            # Duplicate ids (racing pings) are no-ops in the store.
            for d in record.discoveries:
                self.discoveries.create(d)

            self.channel.publish(LOCATION_CHANGED, location)
            if record.discoveries:
                logger.debug(
                    "Location update for %s on %s created %d discovery(ies)",
                    account_id,
                    trail.id,
                    len(record.discoveries),
                )
                self.channel.publish(DISCOVERIES_CREATED, list(record.discoveries))
            return record

        return self._run("process_location", op)

    def get_discovery_trail(
        self, context: AccountContext, trail_id: str, *, viewport: GeoBoundary | None = None
    ) -> Result[DiscoveryTrail]:
        def op() -> DiscoveryTrail:
            account_id = self._account_id(context)
            trail = self._trail(trail_id)
            view = create_discovery_trail(
                account_id,
                trail,
                self.discoveries.list(lambda d: d.account_id == account_id),
                self.spots.list(),
                viewport=viewport,
            )
            logger.debug(
                "Discovery trail %s for %s: %d discovered, %d clue(s)",
                trail.id,
                account_id,
                len(view.discovered_spots),
                len(view.preview_clues),
            )
            return view

        return self._run("get_discovery_trail", op)

    def create_scan_event(
        self,
        context: AccountContext,
        trail_id: str,
        location: GeoLocation,
        *,
        now: datetime | None = None,
    ) -> Result[ScanEvent]:
        """Sweep the trail's scanner radius. Never creates a discovery."""

        def op() -> ScanEvent:
            account_id = self._account_id(context)
            trail = self._trail(trail_id)
            spots = self._trail_spots(trail)
            event = generate_scan_event(
                account_id,
                location,
                spots,
                scanner_radius(trail, self.settings.discovery.default_scanner_radius_m),
                self.discoveries.list(lambda d: d.account_id == account_id),
                trail.id,
                now=now,
                index=self._spot_index(trail, spots),
            )
            self.scan_events.create(event)
            logger.debug(
                "Scan %s for %s on %s: successful=%s clues=%d",
                event.id,
                account_id,
                trail.id,
                event.successful,
                len(event.clues),
            )
            self.channel.publish(SCAN_RECORDED, event)
            return event

        return self._run("create_scan_event", op)

    def list_scan_events(self, context: AccountContext, trail_id: str | None = None) -> Result[list[ScanEvent]]:
        """Recorded scans of the account, oldest first."""

        def op() -> list[ScanEvent]:
            account_id = self._account_id(context)
            events = self.scan_events.list(
                lambda e: e.account_id == account_id and (trail_id is None or e.trail_id == trail_id)
            )
            return sorted(events, key=lambda e: ensure_tz(e.scanned_at))

        return self._run("list_scan_events", op)

    def get_discoveries(self, context: AccountContext, trail_id: str | None = None) -> Result[list[Discovery]]:
        def op() -> list[Discovery]:
            account_id = self._account_id(context)
            mine = account_discoveries(account_id, self.discoveries.list(), trail_id)
            return sorted(mine, key=lambda d: ensure_tz(d.discovered_at))

        return self._run("get_discoveries", op)

    def get_discovery_stats(self, context: AccountContext, discovery_id: str) -> Result[DiscoveryStats]:
        def op() -> DiscoveryStats:
            account_id = self._account_id(context)
            discovery = self.discoveries.get(discovery_id)
            if discovery is None or discovery.account_id != account_id:
                raise DiscoveryNotFoundError(
                    f"Discovery not found: {discovery_id}", discovery_id=discovery_id
                )
            trail = self._trail(discovery.trail_id)
            everything = self.discoveries.list()
            return discovery_stats(
                discovery,
                [d for d in everything if d.spot_id == discovery.spot_id],
                [d for d in everything if d.account_id == account_id],
                trail.spot_ids,
                self.spots.list(),
            )

        return self._run("get_discovery_stats", op)

    def get_trail_stats(self, context: AccountContext, trail_id: str) -> Result[TrailStats]:
        def op() -> TrailStats:
            account_id = self._account_id(context)
            trail = self._trail(trail_id)
            existing = [s.id for s in self._trail_spots(trail)]
            if not existing:
                raise TrailHasNoSpotsError(f"Trail has no spots: {trail_id}", trail_id=trail_id)
            return trail_stats(account_id, trail.id, self.discoveries.list(), existing)

        return self._run("get_trail_stats", op)
