"""
Geo <-> pixel projection for a fixed-size render surface.

The canvas is a linear (equirectangular) mapping of a GeoBoundary onto a pixel box:
x grows eastward with longitude, y grows downward while latitude grows northward,
hence the inverted y term.

Degenerate inputs never raise or produce NaN/inf:
- zero-span boundary axis: points project onto the middle of that axis
- zero-size surface axis: pixels map back to the boundary's west/north edge
- point-like trail boundary: zoom limits fall back to `DEGENERATE_ZOOM_LIMITS`,
  meters-per-pixel to 1.0, adaptive radius to the maximum radius
"""

from __future__ import annotations

from dataclasses import dataclass

from spotfinder.core.geo import (
    METERS_PER_DEGREE,
    boundary_around,
    dimensions,
    distance_to_boundary_edge,
    is_in_bounds,
    lon_degrees_for,
)
from spotfinder.domain.models import GeoBoundary, GeoLocation
from spotfinder.scoring.composite import clamp

DEVICE_VIEWPORT_RADIUS_M = 1000.0
ADAPTIVE_MIN_RADIUS_M = 200.0
MAX_DETAIL_M = 50.0
ZOOM_SCREEN_PADDING = 0.95
ZOOM_SCALE_FLOOR = 0.5
ZOOM_SCALE_CEILING = 3.0
ZOOM_MAX_FLOOR = 1.0


@dataclass(frozen=True)
class ScreenSize:
    width: float
    height: float


@dataclass(frozen=True)
class ScreenPoint:
    x: float
    y: float


@dataclass(frozen=True)
class ScreenRect:
    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class ScaleLimits:
    min: float
    max: float


@dataclass(frozen=True)
class ScaleRange:
    init: float
    min: float
    max: float


@dataclass(frozen=True)
class DeviceBoundaryStatus:
    is_outside: bool
    distance: float
    closest_point: GeoLocation | None = None


@dataclass(frozen=True)
class MapRegion:
    center: GeoLocation
    radius_m: float
    boundary: GeoBoundary


DEGENERATE_ZOOM_LIMITS = ScaleLimits(min=0.8, max=1.5)


def to_screen(location: GeoLocation, boundary: GeoBoundary, size: ScreenSize) -> ScreenPoint:
    """Project a location onto the surface spanned by `boundary`."""
    lon_span = boundary.east - boundary.west
    lat_span = boundary.north - boundary.south
    lon_ratio = (location.lon - boundary.west) / lon_span if lon_span else 0.5
    lat_ratio = (boundary.north - location.lat) / lat_span if lat_span else 0.5
    return ScreenPoint(x=size.width * lon_ratio, y=size.height * lat_ratio)


def to_geo(point: ScreenPoint, boundary: GeoBoundary, size: ScreenSize) -> GeoLocation:
    """Exact inverse of `to_screen` for non-degenerate boundaries and sizes."""
    lon_ratio = point.x / size.width if size.width else 0.0
    lat_ratio = point.y / size.height if size.height else 0.0
    lon = boundary.west + (boundary.east - boundary.west) * lon_ratio
    lat = boundary.north - (boundary.north - boundary.south) * lat_ratio
    return GeoLocation(lat=clamp(lat, -90.0, 90.0), lon=lon)


def viewport_around(center: GeoLocation, radius_m: float = DEVICE_VIEWPORT_RADIUS_M) -> GeoBoundary:
    """Device-centered viewport boundary."""
    return boundary_around(center, radius_m)


def _longest_dimension_m(boundary: GeoBoundary) -> float:
    dims = dimensions(boundary)
    return max(dims.meters.width, dims.meters.height)


def adaptive_radius(
    trail_boundary: GeoBoundary,
    max_radius_m: float = DEVICE_VIEWPORT_RADIUS_M,
    padding_factor: float = 1.5,
    *,
    min_radius_m: float = ADAPTIVE_MIN_RADIUS_M,
) -> float:
    """Viewport radius that fits the trail with padding, within [min_radius_m, max_radius_m]."""
    longest = _longest_dimension_m(trail_boundary)
    if longest <= 0:
        return float(max_radius_m)
    suggested = (longest / 2) * padding_factor
    return min(max(suggested, min_radius_m), float(max_radius_m))


def zoom_limits(
    boundary: GeoBoundary,
    canvas_size: ScreenSize,
    screen_size: ScreenSize,
    max_detail_m: float = MAX_DETAIL_M,
    *,
    screen_padding: float = ZOOM_SCREEN_PADDING,
    scale_floor: float = ZOOM_SCALE_FLOOR,
    scale_ceiling: float = ZOOM_SCALE_CEILING,
    max_floor: float = ZOOM_MAX_FLOOR,
    fallback: ScaleLimits = DEGENERATE_ZOOM_LIMITS,
) -> ScaleLimits:
    """Scale bounds for a map layer showing `boundary`.

    - min: the whole canvas (trail) fits on screen with a little padding
    - max: no less than `max_detail_m` of the trail's longer side stays visible
    """
    longest = _longest_dimension_m(boundary)
    canvas_max = max(canvas_size.width, canvas_size.height)
    if longest <= 0 or canvas_max <= 0 or max_detail_m <= 0:
        return fallback

    screen_min = min(screen_size.width, screen_size.height)
    min_scale = max(scale_floor, screen_min * screen_padding / canvas_max)
    max_scale = min(scale_ceiling, max(max_floor, longest / max_detail_m))
    return ScaleLimits(min=min_scale, max=max(max_scale, min_scale))


def layout_sub_layer(inner: GeoBoundary, outer: GeoBoundary, outer_size: ScreenSize) -> ScreenRect:
    """Pixel rect of a nested boundary (e.g. a trail map image) inside the outer viewport."""
    top_left = to_screen(GeoLocation(lat=inner.north, lon=inner.west), outer, outer_size)
    bottom_right = to_screen(GeoLocation(lat=inner.south, lon=inner.east), outer, outer_size)
    return ScreenRect(
        left=top_left.x,
        top=top_left.y,
        width=bottom_right.x - top_left.x,
        height=bottom_right.y - top_left.y,
    )


def circle_dimensions(
    center: GeoLocation, radius_m: float, boundary: GeoBoundary, size: ScreenSize
) -> ScreenRect:
    """Bounding rect of a radius ring, measured along the meridian."""
    center_px = to_screen(center, boundary, size)
    north_lat = clamp(center.lat + radius_m / METERS_PER_DEGREE, -90.0, 90.0)
    edge_px = to_screen(GeoLocation(lat=north_lat, lon=center.lon), boundary, size)
    r = abs(center_px.y - edge_px.y)
    return ScreenRect(left=center_px.x - r, top=center_px.y - r, width=2 * r, height=2 * r)


def box_dimensions(
    center: GeoLocation, size_m: ScreenSize, boundary: GeoBoundary, size: ScreenSize
) -> ScreenRect:
    """Pixel rect of a `size_m` (meters) box centered on `center`."""
    center_px = to_screen(center, boundary, size)
    east = GeoLocation(lat=center.lat, lon=center.lon + lon_degrees_for(size_m.width / 2, center.lat))
    south = GeoLocation(lat=clamp(center.lat - size_m.height / 2 / METERS_PER_DEGREE, -90.0, 90.0), lon=center.lon)
    half_w = abs(to_screen(east, boundary, size).x - center_px.x)
    half_h = abs(to_screen(south, boundary, size).y - center_px.y)
    return ScreenRect(left=center_px.x - half_w, top=center_px.y - half_h, width=2 * half_w, height=2 * half_h)


def meters_per_pixel(boundary: GeoBoundary, canvas_size: ScreenSize) -> float:
    dims = dimensions(boundary)
    if dims.meters.width <= 0 and dims.meters.height <= 0:
        return 1.0
    if canvas_size.width <= 0 or canvas_size.height <= 0:
        return 1.0
    return max(dims.meters.width / canvas_size.width, dims.meters.height / canvas_size.height)


def meters_to_pixels(boundary: GeoBoundary, meters: float, content_width: float) -> float:
    """Pixel length of `meters` on a surface of `content_width` pixels across."""
    width_m = dimensions(boundary).meters.width
    if width_m <= 0:
        return 0.0
    return meters * content_width / width_m


def device_boundary_status(device: GeoLocation | None, boundary: GeoBoundary) -> DeviceBoundaryStatus:
    """Whether the device is outside the trail, and how far from its edge."""
    if device is None or is_in_bounds(device, boundary):
        return DeviceBoundaryStatus(is_outside=False, distance=0.0)
    edge = distance_to_boundary_edge(device, boundary)
    return DeviceBoundaryStatus(is_outside=True, distance=edge.distance, closest_point=edge.closest_point)


def optimal_scale(map_size: ScreenSize, container_size: ScreenSize) -> ScaleRange:
    """Scale that fits `map_size` into `container_size`, with pinch limits around it."""
    if map_size.width <= 0 or map_size.height <= 0:
        fit = 1.0
    else:
        fit = min(container_size.width / map_size.width, container_size.height / map_size.height)
        if fit <= 0:
            fit = 1.0
    return ScaleRange(init=fit, min=fit * 0.9, max=fit * 4)


def map_region(
    trail_boundary: GeoBoundary | None,
    device: GeoLocation | None,
    *,
    default_radius_m: float = DEVICE_VIEWPORT_RADIUS_M,
    padding_m: float = 0.0,
) -> MapRegion:
    """Region to show: the trail when known, else a default circle around the device."""
    if trail_boundary is not None:
        center = trail_boundary.center
        radius = _longest_dimension_m(trail_boundary) / 2 or default_radius_m
    else:
        center = device or GeoLocation(lat=0.0, lon=0.0)
        radius = default_radius_m
    return MapRegion(center=center, radius_m=radius, boundary=boundary_around(center, radius + padding_m))
