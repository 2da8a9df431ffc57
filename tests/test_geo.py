import itertools

import pytest

from nearneeds.core.geo import haversine_km
from nearneeds.domain.models import Coordinate

POINTS = [
    Coordinate(lat=0, lng=0),
    Coordinate(lat=0, lng=1),
    Coordinate(lat=40.4168, lng=-3.7038),
    Coordinate(lat=-33.8688, lng=151.2093),
    Coordinate(lat=89.9, lng=45),
    Coordinate(lat=-90, lng=-180),
    Coordinate(lat=25.0478, lng=121.5170),
]


def test_one_degree_of_longitude_on_the_equator():
    d = haversine_km(Coordinate(lat=0, lng=0), Coordinate(lat=0, lng=1))
    assert d == pytest.approx(111.19, abs=0.01)


@pytest.mark.parametrize("p", POINTS)
def test_distance_to_self_is_zero(p):
    assert haversine_km(p, p) == 0


@pytest.mark.parametrize("a,b", list(itertools.combinations(POINTS, 2)))
def test_distance_is_non_negative_and_symmetric(a, b):
    ab = haversine_km(a, b)
    assert ab >= 0
    assert ab == pytest.approx(haversine_km(b, a), abs=1e-6)


@pytest.mark.parametrize("a,b,c", list(itertools.combinations(POINTS, 3)))
def test_triangle_inequality_holds_approximately(a, b, c):
    assert haversine_km(a, c) <= haversine_km(a, b) + haversine_km(b, c) + 1e-6


def test_antipodal_points_give_half_the_circumference():
    d = haversine_km(Coordinate(lat=0, lng=0), Coordinate(lat=0, lng=180))
    assert d == pytest.approx(3.141592653589793 * 6371, rel=1e-9)
