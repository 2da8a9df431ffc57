import pytest

from nearneeds.board.map_view import build_map_view, zoom_for_radius
from nearneeds.domain.models import Coordinate


@pytest.mark.parametrize(
    "radius_km,zoom",
    [(1, 13), (5, 13), (10, 13), (25, 10), (50, 10), (100, 7), (500, 7)],
)
def test_zoom_follows_radius(settings, radius_km, zoom):
    assert zoom_for_radius(radius_km, settings.map) == zoom


def test_no_location_means_no_map(settings):
    assert build_map_view(None, 5, settings.map) is None


def test_map_centers_marker_and_circle_on_location(settings):
    here = Coordinate(lat=40.4, lng=-3.7)

    view = build_map_view(here, 25, settings.map)

    assert view is not None
    assert view.center == here
    assert view.marker == here
    assert view.radius_m == 25_000
    assert view.zoom == 10
    assert "openstreetmap" in view.tile_url
