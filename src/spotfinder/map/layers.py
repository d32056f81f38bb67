"""
Map layer state machine.

Two layers:
- CANVAS: device-centered viewport that follows GPS
- OVERVIEW: whole-trail view with free pan/zoom (follow disabled)

The only transition is an explicit toggle. Returning to CANVAS re-centers on the
last known device location.

`MapController` owns the current layer and the latest `MapState` snapshot. It
listens for "location changed" on the event channel, recomputes the snapshot and
publishes "map state changed" for the render layer. Both layers derive their zoom
limits from their own viewport; the trail map image is laid out as a sub-layer of
that viewport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from spotfinder.config.settings import MapSettings
from spotfinder.domain.models import GeoBoundary, GeoLocation
from spotfinder.events.channel import LOCATION_CHANGED, MAP_STATE_CHANGED, EventChannel
from spotfinder.map.projector import (
    DeviceBoundaryStatus,
    ScaleLimits,
    ScreenPoint,
    ScreenRect,
    ScreenSize,
    adaptive_radius,
    device_boundary_status,
    layout_sub_layer,
    map_region,
    to_screen,
    viewport_around,
    zoom_limits,
)

logger = logging.getLogger(__name__)


class MapLayer(str, Enum):
    CANVAS = "canvas"
    OVERVIEW = "overview"


def next_layer(layer: MapLayer) -> MapLayer:
    return MapLayer.OVERVIEW if layer is MapLayer.CANVAS else MapLayer.CANVAS


@dataclass(frozen=True)
class MapState:
    layer: MapLayer
    follow: bool
    viewport: GeoBoundary | None
    canvas_size: ScreenSize
    scale_limits: ScaleLimits
    device: GeoLocation | None = None
    device_point: ScreenPoint | None = None
    boundary_status: DeviceBoundaryStatus | None = None
    trail_surface: ScreenRect | None = None


class MapController:
    def __init__(
        self,
        channel: EventChannel,
        settings: MapSettings | None = None,
        *,
        trail_boundary: GeoBoundary | None = None,
        screen_size: ScreenSize | None = None,
    ) -> None:
        self._channel = channel
        self._settings = settings or MapSettings()
        self._trail_boundary = trail_boundary
        canvas_px = float(self._settings.canvas_size_px)
        self._canvas_size = ScreenSize(canvas_px, canvas_px)
        self._screen_size = screen_size or self._canvas_size
        self._device: GeoLocation | None = None
        self._layer = MapLayer.CANVAS
        self._state = self._compute()
        self._unsubscribe: Callable[[], None] | None = channel.subscribe(LOCATION_CHANGED, self._on_location)

    @property
    def state(self) -> MapState:
        return self._state

    @property
    def layer(self) -> MapLayer:
        return self._layer

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def toggle_layer(self) -> MapState:
        self._layer = next_layer(self._layer)
        logger.debug("Map layer -> %s", self._layer.value)
        return self._publish()

    def set_trail_boundary(self, boundary: GeoBoundary | None) -> MapState:
        self._trail_boundary = boundary
        return self._publish()

    def _on_location(self, location: GeoLocation) -> None:
        self._device = location
        self._publish()

    def _publish(self) -> MapState:
        self._state = self._compute()
        self._channel.publish(MAP_STATE_CHANGED, self._state)
        return self._state

    def _viewport(self) -> GeoBoundary | None:
        s = self._settings
        if self._layer is MapLayer.OVERVIEW:
            if self._trail_boundary is None and self._device is None:
                return None
            region = map_region(
                self._trail_boundary,
                self._device,
                default_radius_m=s.device_viewport_radius_m,
                padding_m=s.default_padding_m,
            )
            return region.boundary
        if self._device is None:
            return None
        radius = s.device_viewport_radius_m
        if self._trail_boundary is not None:
            radius = adaptive_radius(
                self._trail_boundary,
                s.device_viewport_radius_m,
                s.adaptive_padding_factor,
                min_radius_m=s.adaptive_min_radius_m,
            )
        return viewport_around(self._device, radius)

    def _scale_limits(self, viewport: GeoBoundary | None) -> ScaleLimits:
        s = self._settings
        fallback = ScaleLimits(min=s.degenerate_zoom_limits.min, max=s.degenerate_zoom_limits.max)
        if viewport is None:
            return fallback
        return zoom_limits(
            viewport,
            self._canvas_size,
            self._screen_size,
            s.max_detail_m,
            screen_padding=s.zoom_screen_padding,
            scale_floor=s.zoom_scale_floor,
            scale_ceiling=s.zoom_scale_ceiling,
            max_floor=s.zoom_max_floor,
            fallback=fallback,
        )

    def _compute(self) -> MapState:
        viewport = self._viewport()
        state = MapState(
            layer=self._layer,
            follow=self._layer is MapLayer.CANVAS,
            viewport=viewport,
            canvas_size=self._canvas_size,
            scale_limits=self._scale_limits(viewport),
            device=self._device,
        )
        if self._device is not None and viewport is not None:
            state = replace(state, device_point=to_screen(self._device, viewport, self._canvas_size))
        if self._trail_boundary is not None and viewport is not None:
            state = replace(state, trail_surface=layout_sub_layer(self._trail_boundary, viewport, self._canvas_size))
        if self._device is not None and self._trail_boundary is not None:
            state = replace(state, boundary_status=device_boundary_status(self._device, self._trail_boundary))
        return state
