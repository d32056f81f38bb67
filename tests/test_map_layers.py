import pytest

from spotfinder.config.settings import MapSettings
from spotfinder.core.geo import boundary_around, is_in_bounds
from spotfinder.domain.models import GeoLocation
from spotfinder.events.channel import LOCATION_CHANGED, MAP_STATE_CHANGED, EventChannel
from spotfinder.map.layers import MapController, MapLayer, next_layer
from spotfinder.map.projector import ScaleLimits, zoom_limits

TRAIL_CENTER = GeoLocation(lat=48.137, lon=11.575)


def _controller(channel: EventChannel, **kwargs) -> MapController:
    return MapController(channel, MapSettings(), trail_boundary=boundary_around(TRAIL_CENTER, 400), **kwargs)


def test_only_transition_is_the_toggle():
    assert next_layer(MapLayer.CANVAS) is MapLayer.OVERVIEW
    assert next_layer(MapLayer.OVERVIEW) is MapLayer.CANVAS


def test_starts_on_canvas_following_the_device():
    controller = _controller(EventChannel())
    assert controller.layer is MapLayer.CANVAS
    assert controller.state.follow
    assert controller.state.viewport is None


def test_location_changes_recompute_and_publish_map_state():
    channel = EventChannel()
    controller = _controller(channel)
    published = []
    channel.subscribe(MAP_STATE_CHANGED, published.append)

    device = GeoLocation(lat=48.138, lon=11.576)
    channel.publish(LOCATION_CHANGED, device)

    assert len(published) == 1
    state = published[0]
    assert state is controller.state
    assert state.device == device
    assert state.viewport.center.lat == pytest.approx(device.lat)
    assert state.viewport.center.lon == pytest.approx(device.lon)
    assert state.device_point.x == pytest.approx(500)
    assert state.boundary_status is not None and not state.boundary_status.is_outside


def test_overview_disables_follow_and_canvas_recenters_on_live_location():
    channel = EventChannel()
    controller = _controller(channel)
    channel.publish(LOCATION_CHANGED, GeoLocation(lat=48.138, lon=11.576))

    overview = controller.toggle_layer()
    assert overview.layer is MapLayer.OVERVIEW
    assert not overview.follow
    trail = boundary_around(TRAIL_CENTER, 400)
    assert is_in_bounds(GeoLocation(lat=trail.north, lon=trail.east), overview.viewport)
    assert overview.scale_limits.min <= overview.scale_limits.max

    # The device keeps moving while the user looks at the overview.
    live = GeoLocation(lat=48.140, lon=11.580)
    channel.publish(LOCATION_CHANGED, live)
    assert controller.state.layer is MapLayer.OVERVIEW

    canvas = controller.toggle_layer()
    assert canvas.layer is MapLayer.CANVAS
    assert canvas.follow
    assert canvas.viewport.center.lat == pytest.approx(live.lat)
    assert canvas.viewport.center.lon == pytest.approx(live.lon)


def test_device_outside_trail_is_reported():
    channel = EventChannel()
    controller = _controller(channel)
    channel.publish(LOCATION_CHANGED, GeoLocation(lat=48.2, lon=11.575))
    status = controller.state.boundary_status
    assert status.is_outside
    assert status.distance > 0


def test_close_unsubscribes():
    channel = EventChannel()
    controller = _controller(channel)
    assert channel.subscriber_count(LOCATION_CHANGED) == 1
    controller.close()
    assert channel.subscriber_count(LOCATION_CHANGED) == 0


def test_canvas_zoom_limits_come_from_the_device_viewport():
    channel = EventChannel()
    controller = _controller(channel)
    settings = MapSettings()
    assert controller.state.scale_limits == ScaleLimits(
        min=settings.degenerate_zoom_limits.min, max=settings.degenerate_zoom_limits.max
    )

    channel.publish(LOCATION_CHANGED, TRAIL_CENTER)

    state = controller.state
    assert state.layer is MapLayer.CANVAS
    assert state.scale_limits == zoom_limits(state.viewport, state.canvas_size, state.canvas_size)
    assert state.scale_limits.min == pytest.approx(0.95)
    assert state.scale_limits.max == pytest.approx(3.0)


def test_trail_surface_is_laid_out_inside_the_viewport():
    channel = EventChannel()
    controller = _controller(channel)
    assert controller.state.trail_surface is None

    # A 400 m trail inside the 600 m adaptive viewport around its own center.
    channel.publish(LOCATION_CHANGED, TRAIL_CENTER)

    surface = controller.state.trail_surface
    assert surface.left == pytest.approx(1000 / 6)
    assert surface.top == pytest.approx(1000 / 6)
    assert surface.width == pytest.approx(2000 / 3)
    assert surface.height == pytest.approx(2000 / 3)

    overview = controller.toggle_layer()
    assert overview.trail_surface.left > 0
    assert overview.trail_surface.width < overview.canvas_size.width
