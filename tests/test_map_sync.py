from __future__ import annotations

from conftest import SurfaceRecorder

from pyhunter.exceptions import RenderSurfaceUnavailableError
from pyhunter.geo import GeoPoint
from pyhunter.models.enums import MapStyleKey
from pyhunter.models.pose import Pose
from pyhunter.render.driver import (
    PATH_CASING_LAYER,
    PATH_END_LAYER,
    PATH_END_SOURCE,
    PATH_LINE_LAYER,
    PATH_SOURCE,
    PATH_START_LAYER,
    PATH_START_SOURCE,
    TRAIL_LAYER,
    TRAIL_SOURCE,
    VEHICLE_LAYER,
    VEHICLE_SOURCE,
    MapSyncDriver,
    collect_attribution,
    plan_overlays,
)
from pyhunter.render.styles import END_ICON_ID, SATELLITE_ATTRIBUTION, START_ICON_ID
from pyhunter.state.track import TrackSnapshot


def _point(i: int) -> GeoPoint:
    return GeoPoint(longitude=14.42 + i * 1e-4, latitude=50.088 + i * 1e-4)


def _track(
    trail: int = 0,
    path: int = 0,
    revision: int = 1,
    heading: float | None = None,
) -> TrackSnapshot:
    points = tuple(_point(i) for i in range(trail))
    current = Pose(position=points[-1], heading=heading) if points else None
    return TrackSnapshot(
        current=current,
        trail=points,
        path=tuple(_point(100 + i) for i in range(path)),
        revision=revision,
    )


class _Events:
    def __init__(self) -> None:
        self.drags = 0
        self.failures = 0
        self.attributions: list[str] = []

    def drag(self) -> None:
        self.drags += 1

    def failed(self) -> None:
        self.failures += 1


def _driver(surfaces: SurfaceRecorder, events: _Events, style: MapStyleKey = MapStyleKey.DARK) -> MapSyncDriver:
    driver = MapSyncDriver(
        surface_factory=surfaces,
        style_key=style,
        initial_center=GeoPoint(longitude=14.4208, latitude=50.088),
        initial_zoom=16.0,
        on_user_drag=events.drag,
        on_attribution=events.attributions.append,
        on_map_failed=events.failed,
    )
    assert driver.open() is True
    return driver


# ------------------------------------------------------------------
# plan_overlays
# ------------------------------------------------------------------


def test_plan_for_empty_track_is_empty() -> None:
    plan = plan_overlays(_track())
    assert plan.sources == {}
    assert plan.layer_ids == ()


def test_plan_single_point_path_draws_start_marker_only() -> None:
    plan = plan_overlays(_track(path=1))
    assert plan.layer_ids == (PATH_START_LAYER,)
    assert set(plan.sources) == {PATH_START_SOURCE}


def test_plan_full_draw_order() -> None:
    plan = plan_overlays(_track(trail=3, path=4, heading=45.0))
    assert plan.layer_ids == (
        TRAIL_LAYER,
        PATH_CASING_LAYER,
        PATH_LINE_LAYER,
        PATH_START_LAYER,
        PATH_END_LAYER,
        VEHICLE_LAYER,
    )
    assert plan.sources[PATH_END_SOURCE]["geometry"]["coordinates"] == _point(103).as_lng_lat()
    assert plan.sources[VEHICLE_SOURCE]["properties"] == {"heading": 45.0}
    assert len(plan.sources[TRAIL_SOURCE]["geometry"]["coordinates"]) == 3


def test_plan_single_trail_point_has_marker_but_no_line() -> None:
    plan = plan_overlays(_track(trail=1))
    assert plan.layer_ids == (VEHICLE_LAYER,)


def test_collect_attribution_deduplicates_in_order() -> None:
    style = {
        "sources": {
            "a": {"attribution": "© CARTO"},
            "b": {"attribution": "© OpenStreetMap"},
            "c": {"attribution": "© CARTO"},
            "d": {"type": "geojson"},
            "e": {"attribution": ""},
        }
    }
    assert collect_attribution(style) == "© CARTO | © OpenStreetMap"
    assert collect_attribution(None) == ""
    assert collect_attribution({"sources": []}) == ""


# ------------------------------------------------------------------
# MapSyncDriver
# ------------------------------------------------------------------


def test_nothing_is_pushed_before_style_loads(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    driver.sync(_track(trail=2, path=2))

    assert surfaces.surface.mutations() == []
    assert driver.style_ready is False


def test_style_load_registers_icons_and_draws(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    driver.sync(_track(trail=2, path=2))

    surfaces.surface.finish_style_load()

    surface = surfaces.surface
    assert set(surface.images) == {START_ICON_ID, END_ICON_ID}
    assert surface.layers == [
        TRAIL_LAYER,
        PATH_CASING_LAYER,
        PATH_LINE_LAYER,
        PATH_START_LAYER,
        PATH_END_LAYER,
        VEHICLE_LAYER,
    ]
    assert surface.sources[TRAIL_SOURCE]["lineMetrics"] is True
    assert events.attributions == ["© CARTO | © OpenStreetMap contributors"]
    assert driver.attribution == "© CARTO | © OpenStreetMap contributors"


def test_close_forgets_attribution(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()
    assert driver.attribution != ""

    driver.close()

    assert driver.attribution == ""


def test_resync_of_same_state_is_a_no_op(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()
    driver.sync(_track(trail=3, path=2))
    before = len(surfaces.surface.mutations())

    driver.sync(_track(trail=3, path=2, revision=2))
    surfaces.surface.fire("styledata")

    assert len(surfaces.surface.mutations()) == before


def test_new_pose_updates_data_in_place(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()
    driver.sync(_track(trail=2, path=2))
    before = len(surfaces.surface.mutations())

    driver.sync(_track(trail=3, path=2))

    new_calls = surfaces.surface.mutations()[before:]
    assert sorted(new_calls) == [("set_source_data", TRAIL_SOURCE), ("set_source_data", VEHICLE_SOURCE)]


def test_trail_line_is_inserted_below_vehicle_marker(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()

    driver.sync(_track(trail=1))
    assert surfaces.surface.layers == [VEHICLE_LAYER]
    driver.sync(_track(trail=2))
    assert surfaces.surface.layers == [TRAIL_LAYER, VEHICLE_LAYER]


def test_empty_path_removes_line_and_markers(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()
    driver.sync(_track(trail=2, path=5))

    driver.sync(_track(trail=2, path=0))

    surface = surfaces.surface
    assert surface.layers == [TRAIL_LAYER, VEHICLE_LAYER]
    assert not {PATH_SOURCE, PATH_START_SOURCE, PATH_END_SOURCE} & set(surface.sources)


def test_path_shrinking_to_one_point_keeps_start_marker(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()
    driver.sync(_track(path=3))

    driver.sync(_track(path=1))

    assert surfaces.surface.layers == [PATH_START_LAYER]
    assert set(surfaces.surface.sources) == {PATH_START_SOURCE}


def test_style_switch_redraws_after_load(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()
    driver.sync(_track(trail=3, path=2))

    driver.set_style(MapStyleKey.SATELLITE)
    surface = surfaces.surface
    assert surface.layers == []
    assert surface.images == {}
    assert driver.style_ready is False

    # Updates while the new style loads are held back.
    driver.sync(_track(trail=4, path=2))
    assert surface.layers == []

    surface.finish_style_load()
    assert set(surface.images) == {START_ICON_ID, END_ICON_ID}
    assert surface.layers == [
        TRAIL_LAYER,
        PATH_CASING_LAYER,
        PATH_LINE_LAYER,
        PATH_START_LAYER,
        PATH_END_LAYER,
        VEHICLE_LAYER,
    ]
    assert len(surface.sources[TRAIL_SOURCE]["data"]["geometry"]["coordinates"]) == 4
    assert events.attributions[-1] == SATELLITE_ATTRIBUTION
    assert driver.style_key == MapStyleKey.SATELLITE


def test_existing_icons_are_not_added_twice(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    _driver(surfaces, events)
    surface = surfaces.surface
    surface.finish_style_load()
    surface.fire("styledata")
    surface.fire("load")

    assert [call for call in surface.calls if call[0] == "add_image"] == [
        ("add_image", START_ICON_ID),
        ("add_image", END_ICON_ID),
    ]


def test_dragstart_is_forwarded(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    _driver(surfaces, events)
    surfaces.surface.fire("dragstart")
    assert events.drags == 1


def test_pan_to_uses_fixed_duration(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    assert driver.pan_to(_point(1)) is True
    assert surfaces.surface.pans() == [("pan_to", _point(1), 500)]


def test_surface_error_event_marks_map_failed(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()

    surfaces.surface.fire("error", {"message": "WebGL context lost"})
    driver.sync(_track(trail=2))

    assert driver.map_failed is True
    assert events.failures == 1
    assert surfaces.surface.layers == []
    assert driver.pan_to(_point(0)) is False


def test_failing_surface_call_marks_map_failed(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    driver = _driver(surfaces, events)
    surfaces.surface.finish_style_load()
    surfaces.surface.fail_on.add("add_layer")

    driver.sync(_track(trail=2))
    driver.sync(_track(trail=3))

    assert driver.map_failed is True
    assert events.failures == 1


def test_surface_construction_failure(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    surfaces.error = RenderSurfaceUnavailableError("WebGL not supported")
    driver = MapSyncDriver(
        surface_factory=surfaces,
        initial_center=GeoPoint(longitude=14.4208, latitude=50.088),
        initial_zoom=16.0,
        on_map_failed=events.failed,
    )

    assert driver.open() is False
    assert driver.map_failed is True
    assert events.failures == 1
    driver.sync(_track(trail=2))
    driver.set_style(MapStyleKey.STREET)
    assert driver.pan_to(_point(0)) is False


def test_unexpected_factory_error_also_marks_map_failed(surfaces: SurfaceRecorder) -> None:
    events = _Events()
    surfaces.error = RuntimeError("container missing")
    driver = MapSyncDriver(
        surface_factory=surfaces,
        initial_center=GeoPoint(longitude=14.4208, latitude=50.088),
        initial_zoom=16.0,
        on_map_failed=events.failed,
    )
    assert driver.open() is False
    assert driver.map_failed is True
    assert events.failures == 1
