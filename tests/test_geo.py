from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from pyhunter.exceptions import ProjectionOutOfRangeError
from pyhunter.geo import (
    METERS_PER_DEGREE,
    GeoPoint,
    LocalOffset,
    heading_from_enu_yaw,
    heading_from_quaternion,
    project,
    unproject,
)


def test_project_east_offset_around_prague(origin: GeoPoint) -> None:
    point = project(LocalOffset(x=140.0, y=0.0), origin)

    expected = 14.4208 + 140.0 / (math.cos(math.radians(50.088)) * METERS_PER_DEGREE)
    assert point.longitude == pytest.approx(expected, abs=1e-12)
    assert point.longitude == pytest.approx(14.42276, abs=1e-5)
    assert point.latitude == 50.088


def test_project_north_offset_only_moves_latitude(origin: GeoPoint) -> None:
    point = project(LocalOffset(x=0.0, y=METERS_PER_DEGREE), origin)
    assert point.longitude == origin.longitude
    assert point.latitude == pytest.approx(51.088)


@pytest.mark.parametrize(
    ("x", "y", "origin_lng", "origin_lat"),
    [
        (140.0, -35.5, 14.4208, 50.088),
        (-2500.0, 1800.0, -122.4194, 37.7749),
        (10_000.0, 10_000.0, 0.0, 0.0),
    ],
)
def test_unproject_inverts_project(x: float, y: float, origin_lng: float, origin_lat: float) -> None:
    anchor = GeoPoint(longitude=origin_lng, latitude=origin_lat)
    back = unproject(project(LocalOffset(x=x, y=y), anchor), anchor)
    assert back.x == pytest.approx(x, abs=1e-6)
    assert back.y == pytest.approx(y, abs=1e-6)


def test_project_rejects_polar_origin() -> None:
    pole = GeoPoint(longitude=0.0, latitude=90.0)
    with pytest.raises(ProjectionOutOfRangeError):
        project(LocalOffset(x=10.0, y=0.0), pole)


def test_project_rejects_result_beyond_antimeridian() -> None:
    anchor = GeoPoint(longitude=179.9999, latitude=0.0)
    with pytest.raises(ProjectionOutOfRangeError) as exc_info:
        project(LocalOffset(x=1000.0, y=0.0), anchor)
    assert exc_info.value.longitude > 180.0


def test_project_rejects_result_beyond_pole() -> None:
    anchor = GeoPoint(longitude=0.0, latitude=89.9)
    with pytest.raises(ProjectionOutOfRangeError):
        project(LocalOffset(x=0.0, y=50_000.0), anchor)


@pytest.mark.parametrize(
    ("longitude", "latitude"),
    [(180.5, 0.0), (0.0, -90.01), (float("nan"), 10.0), (10.0, float("inf"))],
)
def test_geopoint_rejects_invalid_coordinates(longitude: float, latitude: float) -> None:
    with pytest.raises(ValidationError):
        GeoPoint(longitude=longitude, latitude=latitude)


def test_local_offset_rejects_non_finite() -> None:
    with pytest.raises(ValidationError):
        LocalOffset(x=float("nan"), y=0.0)


def test_geopoint_lng_lat_order() -> None:
    point = GeoPoint.from_lng_lat([14.5, 50.1])
    assert point.as_lng_lat() == [14.5, 50.1]


def _angle_gap(a: float, b: float) -> float:
    gap = abs(a - b) % 360.0
    return min(gap, 360.0 - gap)


def test_heading_conversions() -> None:
    assert _angle_gap(heading_from_enu_yaw(0.0), 90.0) < 1e-9
    assert _angle_gap(heading_from_enu_yaw(math.pi / 2), 0.0) < 1e-9
    assert _angle_gap(heading_from_enu_yaw(math.pi), 270.0) < 1e-9
    assert 0.0 <= heading_from_enu_yaw(-7.0) < 360.0
    # Identity quaternion faces east.
    assert _angle_gap(heading_from_quaternion(0.0, 0.0, 0.0, 1.0), 90.0) < 1e-9
    half = math.sqrt(0.5)
    assert _angle_gap(heading_from_quaternion(0.0, 0.0, half, half), 0.0) < 1e-9


def test_heading_just_past_north_wraps_to_zero() -> None:
    heading = heading_from_enu_yaw(math.nextafter(math.pi / 2, 4.0))
    assert 0.0 <= heading < 360.0
    assert _angle_gap(heading, 0.0) < 1e-9
