import math

import pytest

from spotfinder.domain.models import GeoBoundary, GeoLocation
from spotfinder.map.projector import (
    DEGENERATE_ZOOM_LIMITS,
    ScreenPoint,
    ScreenSize,
    adaptive_radius,
    box_dimensions,
    circle_dimensions,
    device_boundary_status,
    layout_sub_layer,
    map_region,
    meters_per_pixel,
    meters_to_pixels,
    optimal_scale,
    to_geo,
    to_screen,
    viewport_around,
    zoom_limits,
)

UNIT = GeoBoundary(
    north_east=GeoLocation(lat=1.0, lon=1.0),
    south_west=GeoLocation(lat=0.0, lon=0.0),
)
CANVAS = ScreenSize(1000, 1000)


def _box(north, south, east, west) -> GeoBoundary:
    return GeoBoundary(
        north_east=GeoLocation(lat=north, lon=east),
        south_west=GeoLocation(lat=south, lon=west),
    )


def test_to_screen_projection_example():
    center = to_screen(GeoLocation(lat=0.5, lon=0.5), UNIT, CANVAS)
    assert center.x == pytest.approx(500)
    assert center.y == pytest.approx(500)

    top_left = to_screen(GeoLocation(lat=1.0, lon=0.0), UNIT, CANVAS)
    assert top_left.x == pytest.approx(0)
    assert top_left.y == pytest.approx(0)


def test_to_geo_inverts_to_screen():
    boundary = _box(48.20, 48.10, 11.65, 11.50)
    size = ScreenSize(800, 600)
    for lat, lon in [(48.15, 11.55), (48.10, 11.50), (48.20, 11.65), (48.1234, 11.6012)]:
        location = GeoLocation(lat=lat, lon=lon)
        back = to_geo(to_screen(location, boundary, size), boundary, size)
        assert back.lat == pytest.approx(lat, abs=1e-9)
        assert back.lon == pytest.approx(lon, abs=1e-9)


def test_zero_span_and_zero_size_do_not_produce_nan():
    point_like = _box(1.0, 1.0, 2.0, 2.0)
    p = to_screen(GeoLocation(lat=1.0, lon=2.0), point_like, CANVAS)
    assert (p.x, p.y) == (500, 500)

    g = to_geo(ScreenPoint(10, 10), UNIT, ScreenSize(0, 0))
    assert g.lat == 1.0
    assert g.lon == 0.0


def test_viewport_around_is_centered():
    center = GeoLocation(lat=48.0, lon=11.0)
    vp = viewport_around(center, 500)
    assert vp.center.lat == pytest.approx(48.0)
    assert vp.center.lon == pytest.approx(11.0)


def test_adaptive_radius_clamps_between_min_and_max():
    # 0.01 deg of latitude is 1110 m; half of it padded by 1.5.
    assert adaptive_radius(_box(0.01, 0.0, 0.0, 0.0), 1000, 1.5) == pytest.approx(832.5)
    assert adaptive_radius(_box(0.001, 0.0, 0.0, 0.0), 1000, 1.5) == 200
    assert adaptive_radius(_box(0.1, 0.0, 0.0, 0.0), 1000, 1.5) == 1000
    assert adaptive_radius(_box(1.0, 1.0, 2.0, 2.0), 750, 1.5) == 750


def test_zoom_limits():
    trail = _box(0.01, 0.0, 0.01, 0.0)
    narrow = zoom_limits(trail, CANVAS, ScreenSize(400, 800))
    assert narrow.min == pytest.approx(0.5)
    assert narrow.max == pytest.approx(3.0)

    wide = zoom_limits(trail, CANVAS, ScreenSize(1000, 2000))
    assert wide.min == pytest.approx(0.95)
    assert wide.max >= wide.min


def test_zoom_limits_degenerate_boundary_uses_fallback():
    assert zoom_limits(_box(1.0, 1.0, 2.0, 2.0), CANVAS, ScreenSize(400, 800)) == DEGENERATE_ZOOM_LIMITS
    assert zoom_limits(UNIT, ScreenSize(0, 0), ScreenSize(400, 800)) == DEGENERATE_ZOOM_LIMITS


def test_layout_sub_layer():
    inner = _box(0.75, 0.25, 0.75, 0.25)
    rect = layout_sub_layer(inner, UNIT, CANVAS)
    assert rect.left == pytest.approx(250)
    assert rect.top == pytest.approx(250)
    assert rect.width == pytest.approx(500)
    assert rect.height == pytest.approx(500)


def test_circle_dimensions():
    rect = circle_dimensions(GeoLocation(lat=0.5, lon=0.5), 11_100, UNIT, CANVAS)
    assert rect.width == pytest.approx(200)
    assert rect.left == pytest.approx(400)


def test_meters_per_pixel_and_meters_to_pixels():
    assert meters_per_pixel(_box(1.0, 1.0, 2.0, 2.0), CANVAS) == 1.0
    mpp = meters_per_pixel(_box(0.01, 0.0, 0.01, 0.0), CANVAS)
    assert mpp == pytest.approx(1.11, rel=1e-3)
    assert meters_to_pixels(_box(0.01, 0.0, 0.01, 0.0), 111.0, 1000) == pytest.approx(100, rel=1e-3)
    assert meters_to_pixels(_box(1.0, 1.0, 2.0, 2.0), 10.0, 1000) == 0.0


def test_device_boundary_status():
    assert not device_boundary_status(None, UNIT).is_outside
    assert not device_boundary_status(GeoLocation(lat=0.5, lon=0.5), UNIT).is_outside

    status = device_boundary_status(GeoLocation(lat=0.5, lon=1.5), UNIT)
    assert status.is_outside
    assert status.closest_point.lon == 1.0
    assert status.distance > 0


def test_optimal_scale():
    scale = optimal_scale(ScreenSize(2000, 1000), ScreenSize(1000, 1000))
    assert scale.init == pytest.approx(0.5)
    assert scale.min == pytest.approx(0.45)
    assert scale.max == pytest.approx(2.0)
    assert optimal_scale(ScreenSize(0, 0), ScreenSize(1000, 1000)).init == 1.0


def test_map_region_falls_back_to_device():
    device = GeoLocation(lat=48.0, lon=11.0)
    region = map_region(None, device, default_radius_m=300)
    assert region.center == device
    assert region.radius_m == 300

    trail_region = map_region(UNIT, device)
    assert trail_region.center.lat == pytest.approx(0.5)
    assert math.isfinite(trail_region.radius_m)


def test_box_dimensions():
    rect = box_dimensions(GeoLocation(lat=0.5, lon=0.5), ScreenSize(22_200, 22_200), UNIT, CANVAS)
    assert rect.width == pytest.approx(200, rel=1e-3)
    assert rect.height == pytest.approx(200)
    assert rect.top == pytest.approx(400)
