"""
Lightweight spatial indexing (grid bucket) for lat/lon items.

Radius sweeps and snap lookups only need the spots near the device; bucketing them
on a lat/lon grid avoids measuring every spot on large trails. A query visits the
cells of the spherical bounding box of its radius (wrapping across +/-180 and
widening to every longitude near a pole), so the prefilter never drops an item the
haversine check would keep. Final membership is always decided by that distance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, TypeVar

from spotfinder.core.geo import EARTH_RADIUS_M, distance
from spotfinder.domain.models import GeoLocation

T = TypeVar("T")

_METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0
# Float noise at cell edges; the haversine check removes anything extra.
_RADIUS_SLACK = 1.0 + 1e-6


@dataclass(frozen=True)
class _Entry(Generic[T]):
    item: T
    location: GeoLocation


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: list[T],
        *,
        get_location: Callable[[T], GeoLocation],
        cell_size_m: float = 250.0,
        lat0_deg: float | None = None,
    ):
        if float(cell_size_m) <= 0:
            raise ValueError("cell_size_m must be > 0")
        located = [(it, get_location(it)) for it in items]
        if lat0_deg is None:
            lat0_deg = sum(loc.lat for _, loc in located) / len(located) if located else 0.0
        lat0 = math.radians(max(-89.9, min(89.9, float(lat0_deg))))

        # Cells are square at the reference latitude; correctness does not depend on it.
        self._cell_lat_deg = float(cell_size_m) / _METERS_PER_DEGREE
        self._cell_lon_deg = min(360.0, self._cell_lat_deg / math.cos(lat0))
        self._columns = int(math.ceil(360.0 / self._cell_lon_deg))
        self._cells: dict[tuple[int, int], list[_Entry[T]]] = {}

        for it, loc in located:
            self._cells.setdefault(self._cell_key(loc), []).append(_Entry(item=it, location=loc))

    def __len__(self) -> int:
        return sum(len(c) for c in self._cells.values())

    def _row(self, lat: float) -> int:
        return int(math.floor(lat / self._cell_lat_deg))

    def _column(self, lon_offset: float) -> int:
        # `lon_offset` is degrees east of -180, wrapped into [0, 360).
        return min(self._columns - 1, int(math.floor((lon_offset % 360.0) / self._cell_lon_deg)))

    def _cell_key(self, loc: GeoLocation) -> tuple[int, int]:
        return self._row(loc.lat), self._column(loc.lon + 180.0)

    def _column_span(self, lon: float, half_width_deg: float) -> set[int] | None:
        """Columns covering `lon +/- half_width_deg`, or None for every column."""
        if half_width_deg >= 180.0:
            return None
        start = (lon + 180.0 - half_width_deg) % 360.0
        end = start + 2.0 * half_width_deg
        if end < 360.0:
            return set(range(self._column(start), self._column(end) + 1))
        cols = set(range(self._column(start), self._columns))
        cols.update(range(0, self._column(end - 360.0) + 1))
        return cols

    def _candidates(self, origin: GeoLocation, radius_m: float) -> Iterator[_Entry[T]]:
        delta = radius_m * _RADIUS_SLACK / EARTH_RADIUS_M
        if delta >= math.pi:
            for entries in self._cells.values():
                yield from entries
            return

        lat0 = math.radians(origin.lat)
        lat_min, lat_max = lat0 - delta, lat0 + delta
        if lat_min <= -math.pi / 2 or lat_max >= math.pi / 2:
            # A pole is within reach: every longitude is.
            half_width = 180.0
            lat_min, lat_max = max(lat_min, -math.pi / 2), min(lat_max, math.pi / 2)
        else:
            half_width = math.degrees(math.asin(min(1.0, math.sin(delta) / math.cos(lat0))))

        rows = range(self._row(math.degrees(lat_min)), self._row(math.degrees(lat_max)) + 1)
        columns = self._column_span(origin.lon, half_width)
        if columns is None or len(rows) * len(columns) > len(self._cells):
            for (row, column), entries in self._cells.items():
                if row in rows and (columns is None or column in columns):
                    yield from entries
            return

        for row in rows:
            for column in columns:
                yield from self._cells.get((row, column), ())

    def query_within(self, origin: GeoLocation, radius_m: float) -> list[tuple[T, float]]:
        """Items within `radius_m` of `origin`, paired with their distance, nearest first."""
        r = float(radius_m)
        if r < 0:
            return []
        out: list[tuple[T, float]] = []
        for e in self._candidates(origin, r):
            d = distance(origin, e.location)
            if d <= r:
                out.append((e.item, d))
        out.sort(key=lambda pair: pair[1])
        return out
