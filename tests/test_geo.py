import math

import pytest

from halalmap.core.geo import EARTH_RADIUS_M, GeoPoint, bounding_box, cell_ranges, grid_cell, haversine_m


def test_haversine_one_degree_of_latitude():
    d = haversine_m(GeoPoint(lat=0.0, lon=0.0), GeoPoint(lat=1.0, lon=0.0))
    assert d == pytest.approx(EARTH_RADIUS_M * math.pi / 180, abs=0.01)


def test_haversine_is_symmetric_and_zero_on_same_point():
    a = GeoPoint(lat=41.7151, lon=44.8271)
    b = GeoPoint(lat=41.6417, lon=41.6333)
    assert haversine_m(a, a) == 0.0
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a))


def test_haversine_differs_from_flat_degree_distance():
    # Tbilisi -> Batumi: treating degrees as a flat plane overstates the east-west leg by ~1/cos(lat).
    a = GeoPoint(lat=41.7151, lon=44.8271)
    b = GeoPoint(lat=41.6417, lon=41.6333)
    flat = math.hypot(b.lat - a.lat, b.lon - a.lon) * EARTH_RADIUS_M * math.pi / 180
    assert abs(flat - haversine_m(a, b)) > 50_000


@pytest.mark.parametrize("bearing_deg", [0, 45, 90, 135, 180, 225, 270, 315])
def test_bounding_box_contains_points_on_the_circle(bearing_deg):
    center = GeoPoint(lat=41.7151, lon=44.8271)
    radius = 5000.0
    delta = radius / EARTH_RADIUS_M
    lat1 = math.radians(center.lat)
    lon1 = math.radians(center.lon)
    theta = math.radians(bearing_deg)

    # Destination point along a great circle.
    lat2 = math.asin(math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(theta))
    lon2 = lon1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2),
    )

    box = bounding_box(center, radius)
    assert box.contains(math.degrees(lat2), math.degrees(lon2))


def test_bounding_box_splits_across_antimeridian():
    box = bounding_box(GeoPoint(lat=0.0, lon=179.99), 5000)
    assert len(box.lon_ranges) == 2
    assert box.contains(0.0, -179.99)
    assert box.contains(0.0, 179.99)
    assert not box.contains(0.0, 0.0)


def test_bounding_box_near_pole_covers_all_longitudes():
    box = bounding_box(GeoPoint(lat=89.99, lon=10.0), 5000)
    assert box.lon_ranges == ((-180.0, 180.0),)
    assert box.max_lat == 90.0
    assert box.contains(89.995, -170.0)


def test_grid_cell_floors_negative_coordinates():
    assert grid_cell(41.7151, 44.8271, 0.05) == (834, 896)
    assert grid_cell(-0.01, -0.01, 0.05) == (-1, -1)


def test_cell_ranges_cover_the_box():
    box = bounding_box(GeoPoint(lat=41.7151, lon=44.8271), 20_000)
    (row_lo, row_hi), cols = cell_ranges(box, 0.05)
    assert row_lo <= grid_cell(box.min_lat, 44.8271, 0.05)[0]
    assert row_hi >= grid_cell(box.max_lat, 44.8271, 0.05)[0]
    assert len(cols) == 1
