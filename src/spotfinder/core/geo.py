from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from spotfinder.domain.models import GeoBoundary, GeoLocation
from spotfinder.scoring.composite import round_half_up

"""
Geospatial helpers.

A small spherical-earth layer shared by every engine. Distances use haversine with
R = 6,371,000 m. Boundaries around a point use the flat 111,000 m/degree
approximation, which is adequate at trail scale (< 10 km) and is kept on purpose so
boundaries match the rendered map.
"""

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE = 111_000.0
# cos(lat) underflows toward zero at the poles; longitude spans are computed at most this far out.
POLE_LAT_LIMIT = 89.9

CARDINAL_SHORT = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
CARDINAL_LONG = ("North", "Northeast", "East", "Southeast", "South", "Southwest", "West", "Northwest")


@dataclass(frozen=True)
class Extent:
    width: float
    height: float


@dataclass(frozen=True)
class BoundaryDimensions:
    """Size of a boundary in degrees and (approximate) meters."""

    degrees: Extent
    meters: Extent


@dataclass(frozen=True)
class BoundaryDistance:
    closest_point: GeoLocation
    distance: float


@dataclass(frozen=True)
class Direction:
    bearing: float
    degrees: int
    short: str
    long: str


def _clamp_lat(lat: float, limit: float = 90.0) -> float:
    return max(-limit, min(limit, float(lat)))


def distance(a: GeoLocation, b: GeoLocation) -> float:
    """Great-circle distance in meters (haversine)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlmb = math.radians(b.lon - a.lon)

    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def lon_degrees_for(meters: float, lat: float) -> float:
    """Longitude span (degrees) covering `meters` at latitude `lat`."""
    lat_rad = math.radians(_clamp_lat(lat, POLE_LAT_LIMIT))
    return meters / (METERS_PER_DEGREE * math.cos(lat_rad))


def boundary_around(center: GeoLocation, radius_m: float) -> GeoBoundary:
    """Square boundary extending `radius_m` from `center` in each cardinal direction."""
    radius_m = max(0.0, float(radius_m))
    dlat = radius_m / METERS_PER_DEGREE
    dlon = lon_degrees_for(radius_m, center.lat)
    return GeoBoundary(
        north_east=GeoLocation(lat=_clamp_lat(center.lat + dlat), lon=center.lon + dlon),
        south_west=GeoLocation(lat=_clamp_lat(center.lat - dlat), lon=center.lon - dlon),
    )


def dimensions(boundary: GeoBoundary, reference_lat: float | None = None) -> BoundaryDimensions:
    """Width/height of a boundary; meters are measured at `reference_lat` (default: center)."""
    if reference_lat is None:
        reference_lat = (boundary.north + boundary.south) / 2
    width_deg = abs(boundary.east - boundary.west)
    height_deg = abs(boundary.north - boundary.south)
    lat_rad = math.radians(_clamp_lat(reference_lat, POLE_LAT_LIMIT))
    return BoundaryDimensions(
        degrees=Extent(width=width_deg, height=height_deg),
        meters=Extent(
            width=width_deg * METERS_PER_DEGREE * math.cos(lat_rad),
            height=height_deg * METERS_PER_DEGREE,
        ),
    )


def is_in_bounds(point: GeoLocation, boundary: GeoBoundary) -> bool:
    return (
        boundary.south <= point.lat <= boundary.north
        and boundary.west <= point.lon <= boundary.east
    )


def distance_to_boundary_edge(point: GeoLocation, boundary: GeoBoundary) -> BoundaryDistance:
    """Closest point on `boundary` to `point` and the distance to it (0 when inside)."""
    if is_in_bounds(point, boundary):
        return BoundaryDistance(closest_point=point, distance=0.0)

    closest = GeoLocation(
        lat=max(boundary.south, min(boundary.north, point.lat)),
        lon=max(boundary.west, min(boundary.east, point.lon)),
    )
    return BoundaryDistance(closest_point=closest, distance=distance(point, closest))


def normalize_lon(lon: float) -> float:
    """Normalize a longitude into (-180, 180]."""
    normalized = ((float(lon) + 180.0) % 360.0) - 180.0
    return 180.0 if normalized == -180.0 else normalized


def bounding_box(points: Sequence[GeoLocation], padding_m: float = 50.0) -> GeoBoundary:
    """Padded boundary enclosing all points.

    The longitudinal extent is the minimal arc covering every point, so clusters
    straddling the antimeridian produce a narrow box. The west edge is normalized to
    (-180, 180]; the east edge keeps `west + span` and may exceed 180.
    """
    if not points:
        origin = GeoLocation(lat=0.0, lon=0.0)
        return GeoBoundary(north_east=origin, south_west=origin)

    valid = [p if -180.0 <= p.lon <= 180.0 else GeoLocation(lat=p.lat, lon=normalize_lon(p.lon)) for p in points]
    if len(valid) == 1:
        return boundary_around(valid[0], padding_m)

    min_lat = min(p.lat for p in valid)
    max_lat = max(p.lat for p in valid)

    lons = sorted(p.lon for p in valid)
    gap_index, max_gap = 0, 0.0
    for i in range(len(lons) - 1):
        gap = lons[i + 1] - lons[i]
        if gap > max_gap:
            gap_index, max_gap = i, gap

    wrap_gap = 360.0 - (lons[-1] - lons[0])
    if wrap_gap < max_gap:
        # Skip the widest interior gap and go around through +/-180 instead.
        min_lon = lons[gap_index + 1]
        max_lon = lons[gap_index] + 360.0
    else:
        min_lon = lons[0]
        max_lon = lons[-1]

    lat_pad = padding_m / METERS_PER_DEGREE
    lon_pad = lon_degrees_for(padding_m, (min_lat + max_lat) / 2)

    west = normalize_lon(min_lon - lon_pad)
    span = (max_lon - min_lon) + 2 * lon_pad
    return GeoBoundary(
        north_east=GeoLocation(lat=_clamp_lat(max_lat + lat_pad), lon=west + span),
        south_west=GeoLocation(lat=_clamp_lat(min_lat - lat_pad), lon=west),
    )


def bearing(origin: GeoLocation, destination: GeoLocation) -> float:
    """Initial great-circle bearing in degrees [0, 360)."""
    lat1 = math.radians(origin.lat)
    lat2 = math.radians(destination.lat)
    dlon = math.radians(destination.lon - origin.lon)

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def direction_from_bearing(bearing_deg: float) -> Direction:
    normalized = (float(bearing_deg) % 360.0 + 360.0) % 360.0
    index = round_half_up(normalized / 45.0) % 8
    return Direction(
        bearing=normalized,
        degrees=index * 45,
        short=CARDINAL_SHORT[index],
        long=CARDINAL_LONG[index],
    )


def destination_point(origin: GeoLocation, distance_m: float, bearing_deg: float) -> GeoLocation:
    """Point reached by travelling `distance_m` from `origin` on the given bearing."""
    theta = math.radians(bearing_deg)
    delta = distance_m / EARTH_RADIUS_M
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lon)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(theta)
    )
    lon2 = lon1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2),
    )
    return GeoLocation(lat=math.degrees(lat2), lon=normalize_lon(math.degrees(lon2)))


def nearest(origin: GeoLocation, points: Sequence[GeoLocation]) -> tuple[int, float]:
    """Index of and distance to the nearest point; (-1, inf) for an empty sequence."""
    best_index, best = -1, math.inf
    for i, p in enumerate(points):
        d = distance(origin, p)
        if d < best:
            best_index, best = i, d
    return best_index, best


def format_coordinates(lat: float, lon: float) -> str:
    ns = "N" if lat >= 0 else "S"
    ew = "E" if lon >= 0 else "W"
    return f"{abs(lat):.4f}° {ns}, {abs(lon):.4f}° {ew}"
