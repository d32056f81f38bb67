"""
Domain models (Pydantic).

These types are the contract between the pure engines and their collaborators:
- inputs supplied by repositories (`Trail`, `Spot`, `Discovery` history)
- records handed back for persistence (`Discovery`, `ScanEvent`)
- transient values for the presentation layer (`Clue`, `DiscoverySnap`, `DiscoveryTrail`)

Clues are modelled as a tagged union on `source` and are excluded from the
serialized form of `ScanEvent`, so they never reach storage by accident.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, Field, model_validator

DiscoveryMode = Literal["free", "sequence"]
PreviewMode = Literal["preview", "none"]
SpotVisibility = Literal["public", "preview", "private"]
CompletionStatus = Literal["not_started", "in_progress", "completed"]


class GeoLocation(BaseModel):
    """A latitude/longitude pair in decimal degrees.

    Longitude is not range-checked: boundary corners computed near the
    antimeridian may extend past +/-180 before normalization.
    """

    lat: float = Field(..., ge=-90, le=90)
    lon: float


class GeoBoundary(BaseModel):
    """Axis-aligned lat/lon box."""

    north_east: GeoLocation
    south_west: GeoLocation

    @property
    def north(self) -> float:
        return self.north_east.lat

    @property
    def south(self) -> float:
        return self.south_west.lat

    @property
    def east(self) -> float:
        return self.north_east.lon

    @property
    def west(self) -> float:
        return self.south_west.lon

    @property
    def center(self) -> GeoLocation:
        return GeoLocation(lat=(self.north + self.south) / 2, lon=(self.east + self.west) / 2)


class AccountContext(BaseModel):
    """Caller identity as provided by the authentication subsystem."""

    account_id: str | None = None


class Spot(BaseModel):
    """A hidden point of interest with a discovery radius (meters)."""

    id: str
    name: str = ""
    location: GeoLocation
    discovery_radius: float = Field(..., ge=0)
    visibility: SpotVisibility = "public"
    created_by: str | None = None
    image_blob_path: str | None = None
    blurred_image_blob_path: str | None = None


class TrailOptions(BaseModel):
    discovery_mode: DiscoveryMode = "free"
    preview_mode: PreviewMode = "none"
    scanner_radius: float | None = Field(default=None, gt=0)
    snap_radius: float | None = Field(default=None, gt=0)


class Trail(BaseModel):
    """An ordered set of spots inside a boundary, governed by a discovery policy."""

    id: str
    name: str = ""
    boundary: GeoBoundary
    spot_ids: list[str] = Field(default_factory=list)
    options: TrailOptions = Field(default_factory=TrailOptions)


class Discovery(BaseModel):
    """Append-only record that an account found a spot on a trail."""

    id: str
    account_id: str
    spot_id: str
    trail_id: str
    discovered_at: datetime
    scan_event_id: str | None = None


class _ClueBase(BaseModel):
    spot_id: str
    trail_id: str | None = None
    location: GeoLocation
    discovery_radius: float
    degraded_image: str | None = None


class PreviewClue(_ClueBase):
    """Clue surfaced by the trail's preview mode."""

    source: Literal["preview"] = "preview"


class ScanClue(_ClueBase):
    """Clue sensed by an on-demand radius sweep."""

    source: Literal["scanEvent"] = "scanEvent"


Clue = Annotated[Union[PreviewClue, ScanClue], Field(discriminator="source")]


class ScanEvent(BaseModel):
    """History record of one radius sweep; never a source of discoveries."""

    id: str
    account_id: str
    trail_id: str | None = None
    location: GeoLocation
    radius_used: float = Field(..., gt=0)
    successful: bool
    scanned_at: datetime
    clues: list[Clue] = Field(default_factory=list, exclude=True)


class DiscoverySnap(BaseModel):
    """Directional proximity hint toward the nearest unclaimed spot."""

    intensity: float = Field(0.0, ge=0, le=1)
    distance: float = Field(0.0, ge=0)


class DiscoveryLocationRecord(BaseModel):
    """Outcome of a single location update."""

    location: GeoLocation
    direction: float | None = None
    discoveries: list[Discovery] = Field(default_factory=list)
    snap: DiscoverySnap = Field(default_factory=DiscoverySnap)
    created_at: datetime


class DiscoverySpot(BaseModel):
    """A spot joined with the discovery that unlocked it."""

    spot: Spot
    discovery_id: str
    discovered_at: datetime


class DiscoveryTrail(BaseModel):
    """Composite view of one account's progress on a trail."""

    trail: Trail
    discovered_spots: list[DiscoverySpot] = Field(default_factory=list)
    preview_clues: list[Clue] = Field(default_factory=list)
    discoveries: list[Discovery] = Field(default_factory=list)
    created_at: datetime


class DiscoveryStats(BaseModel):
    discovery_id: str
    rank: int
    total_discoverers: int
    trail_position: int
    trail_total: int
    time_since_last_discovery: int | None = None
    distance_from_last_discovery: int | None = None


class TrailStats(BaseModel):
    trail_id: str
    total_spots: int
    discovered_spots: int
    discoveries_count: int
    progress_percentage: int = Field(..., ge=0, le=100)
    completion_status: CompletionStatus
    rank: int
    total_discoverers: int
    first_discovered_at: datetime | None = None
    last_discovered_at: datetime | None = None
    average_time_between_discoveries: float | None = None


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


T = TypeVar("T")


class Result(BaseModel, Generic[T]):
    """Typed success/failure envelope returned by the application layer."""

    success: bool
    data: T | None = None
    error: ErrorInfo | None = None

    @model_validator(mode="after")
    def _validate_shape(self) -> "Result[T]":
        if not self.success and self.error is None:
            raise ValueError("a failed result must carry an error")
        return self

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ErrorInfo) -> "Result[T]":
        return cls(success=False, error=error)
