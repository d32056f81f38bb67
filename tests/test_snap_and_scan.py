from datetime import datetime, timezone

import pytest
from pydantic import TypeAdapter

from spotfinder.core.geo import boundary_around, destination_point
from spotfinder.core.spatial_index import SpatialGridIndex
from spotfinder.discovery.clues import micro_image_path, preview_clues
from spotfinder.discovery.proximity import create_discovery, find_new_discoveries
from spotfinder.discovery.scan import generate_scan_event, scanner_radius
from spotfinder.discovery.snap import discovery_snap, proximity_intensity, snap_hint_line, snap_range
from spotfinder.domain.models import Clue, GeoLocation, ScanClue, Spot, Trail, TrailOptions

ORIGIN = GeoLocation(lat=48.137, lon=11.575)
NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _spot(spot_id: str, meters: float, *, radius: float = 20.0, **kwargs) -> Spot:
    return Spot(
        id=spot_id,
        location=destination_point(ORIGIN, meters, 0.0),
        discovery_radius=radius,
        **kwargs,
    )


def _trail(spot_ids, **options) -> Trail:
    return Trail(id="t1", boundary=boundary_around(ORIGIN, 2000), spot_ids=spot_ids, options=TrailOptions(**options))


def test_intensity_is_linear_monotonic_and_bounded():
    assert proximity_intensity(0, 100) == 1.0
    assert proximity_intensity(100, 100) == 0.0
    assert proximity_intensity(150, 100) == 0.0
    assert proximity_intensity(25, 100) == pytest.approx(0.75)

    values = [proximity_intensity(d, 100) for d in range(0, 130, 5)]
    assert all(0.0 <= v <= 1.0 for v in values)
    assert all(a >= b for a, b in zip(values, values[1:]))


def test_snap_range_fallbacks():
    assert snap_range(_trail([], snap_radius=300, scanner_radius=50)) == 300
    assert snap_range(_trail([], scanner_radius=50)) == 50
    assert snap_range(_trail([]), default_m=1000) == 1000


def test_discovery_snap_picks_nearest_unexplored_in_range():
    spots = [_spot("a", 40), _spot("b", 80), _spot("c", 500)]

    snap = discovery_snap(ORIGIN, spots, ["a"], 100)
    assert snap.distance == pytest.approx(80, abs=1e-6)
    assert snap.intensity == pytest.approx(0.2, abs=1e-6)

    index = SpatialGridIndex(spots, get_location=lambda s: s.location, cell_size_m=50)
    assert discovery_snap(ORIGIN, spots, ["a"], 100, index=index) == snap

    nothing = discovery_snap(ORIGIN, spots, ["a", "b"], 100)
    assert (nothing.intensity, nothing.distance) == (0.0, 0.0)


def test_snap_hint_line_never_points_at_the_target():
    current = GeoLocation(lat=1.0, lon=1.0)
    previous = GeoLocation(lat=0.9, lon=1.0)
    last_found = GeoLocation(lat=0.5, lon=0.5)

    line = snap_hint_line(current, 0.6, previous=previous, last_discovered=last_found)
    assert (line.start, line.end) == (previous, current)

    line = snap_hint_line(current, 0.6, last_discovered=last_found)
    assert line.start == last_found

    line = snap_hint_line(current, 0.0, previous=previous)
    assert line.start == current
    assert line.intensity == 0.0


def test_scan_produces_clue_but_never_a_discovery():
    spot = _spot("s1", 25, radius=20, visibility="preview", blurred_image_blob_path="img/s1-blurred.webp")
    trail = _trail(["s1"], scanner_radius=50)
    device = ORIGIN

    assert find_new_discoveries("u1", device, [spot], [], trail, now=NOW) == []

    event = generate_scan_event("u1", device, [spot], scanner_radius(trail), [], trail.id, now=NOW)

    assert event.successful
    assert event.radius_used == 50
    assert len(event.clues) == 1
    clue = event.clues[0]
    assert isinstance(clue, ScanClue)
    assert clue.source == "scanEvent"
    assert clue.degraded_image == "img/s1-micro.webp"
    # Clues are transient and never serialized with the event.
    assert "clues" not in event.model_dump()


def test_scan_without_anything_in_range():
    event = generate_scan_event("u1", ORIGIN, [_spot("far", 500)], 50, now=NOW)
    assert not event.successful
    assert event.clues == []
    assert event.scanned_at == NOW


def test_scan_clues_exclude_own_discovered_and_walkable_spots():
    spots = [
        _spot("inside", 10, radius=20, visibility="preview"),
        _spot("mine", 30, visibility="preview", created_by="u1"),
        _spot("found", 35, visibility="preview"),
        _spot("public", 40, visibility="public"),
        _spot("hint", 45, visibility="preview"),
    ]
    history = [create_discovery("u1", "found", "t1", discovered_at=NOW)]

    event = generate_scan_event("u1", ORIGIN, spots, 50, history, "t1", now=NOW)

    assert event.successful
    assert [c.spot_id for c in event.clues] == ["hint"]


def test_scans_are_not_idempotent():
    a = generate_scan_event("u1", ORIGIN, [], 50, now=NOW)
    b = generate_scan_event("u1", ORIGIN, [], 50, now=NOW)
    assert a.id != b.id


def test_scanner_radius_default():
    assert scanner_radius(_trail([])) == 50
    assert scanner_radius(None, default_m=80) == 80
    assert scanner_radius(_trail([], scanner_radius=120)) == 120


def test_micro_image_path():
    assert micro_image_path("spots/abc-blurred.webp") == "spots/abc-micro.webp"
    assert micro_image_path("spots/abc.jpg") == "spots/abc-micro.jpg"
    assert micro_image_path("abc-blurred") == "abc-micro"
    assert micro_image_path(None) is None


def test_preview_clues_filter_visibility_author_discovered_and_viewport():
    spots = [
        _spot("p1", 100, visibility="preview"),
        _spot("p2", 200, visibility="public"),
        _spot("p3", 300, visibility="preview", created_by="u1"),
        _spot("p4", 400, visibility="preview"),
        _spot("p5", 1500, visibility="preview"),
    ]
    trail = _trail(["p5", "p4", "p3", "p2", "p1"], preview_mode="preview")
    history = [create_discovery("u1", "p4", "t1", discovered_at=NOW)]

    clues = preview_clues("u1", trail, history, spots)
    assert [c.spot_id for c in clues] == ["p5", "p1"]
    assert all(c.source == "preview" for c in clues)
    assert "image_blob_path" not in clues[0].model_dump()

    visible = preview_clues("u1", trail, history, spots, viewport=boundary_around(ORIGIN, 500))
    assert [c.spot_id for c in visible] == ["p1"]

    assert preview_clues("u1", _trail(["p1"], preview_mode="none"), [], spots) == []


def test_clue_union_is_tagged_by_source():
    clue = TypeAdapter(Clue).validate_python(
        {"source": "scanEvent", "spot_id": "s", "location": {"lat": 1, "lon": 2}, "discovery_radius": 10}
    )
    assert isinstance(clue, ScanClue)


def test_spatial_index_matches_a_full_scan_near_a_pole():
    pole = GeoLocation(lat=89.9995, lon=0.0)
    spots = [
        Spot(id=f"p{i}", location=destination_point(pole, 40, heading), discovery_radius=5)
        for i, heading in enumerate(range(0, 360, 45))
    ]
    index = SpatialGridIndex(spots, get_location=lambda s: s.location, cell_size_m=25)

    hits = {s.id for s, _ in index.query_within(pole, 50)}

    assert hits == {s.id for s in spots}
