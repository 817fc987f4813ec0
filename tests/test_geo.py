import math

import pytest

from evcharge.geo import bounding_box, haversine_km, km_to_miles
from evcharge.models import Coordinate


def test_haversine_zero_for_same_point():
    point = Coordinate(lat=37.7749, lng=-122.4194)
    assert haversine_km(point, point) == pytest.approx(0.0)


def test_haversine_known_distance():
    san_francisco = Coordinate(lat=37.7749, lng=-122.4194)
    los_angeles = Coordinate(lat=34.0522, lng=-118.2437)
    assert haversine_km(san_francisco, los_angeles) == pytest.approx(559, rel=0.01)


def test_km_to_miles():
    assert km_to_miles(10) == pytest.approx(6.21371)


def test_bounding_box_scales_longitude_by_latitude():
    center = Coordinate(lat=60.0, lng=10.0)
    bbox = bounding_box(center, 69.0)
    assert bbox.north == pytest.approx(61.0)
    assert bbox.south == pytest.approx(59.0)
    # cos(60°) = 0.5, so one degree of latitude spans two of longitude
    assert bbox.east == pytest.approx(12.0)
    assert bbox.west == pytest.approx(8.0)
    assert bbox.to_param() == f"{bbox.west},{bbox.south},{bbox.east},{bbox.north}"


def test_bounding_box_at_equator_is_square():
    bbox = bounding_box(Coordinate(lat=0.0, lng=0.0), 25.0)
    assert bbox.north - bbox.south == pytest.approx(bbox.east - bbox.west)
    assert not math.isnan(bbox.east)
