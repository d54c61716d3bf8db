import pytest

from conftest import MADRID, make_station
from src.app.models import Corridor, PointRadius
from src.app.services.geo_filter import (
    apply_spatial_query,
    filter_along_corridor,
    filter_within_radius,
    min_distance_to_route_km,
    rank_along_route,
)
from src.app.services.geodesy import distance_km


def test_point_radius_keeps_only_stations_within_radius(madrid_stations):
    result = filter_within_radius(madrid_stations, MADRID, 10.0)

    assert [s.station_id for s in result] == ["1", "2", "3"]
    for station in result:
        d = distance_km(MADRID[0], MADRID[1], station.latitude, station.longitude)
        assert d <= 10.0
        assert station.distance_km == pytest.approx(d)


def test_point_radius_does_not_mutate_canonical_records(madrid_stations):
    filter_within_radius(madrid_stations, MADRID, 10.0)
    assert all(s.distance_km is None for s in madrid_stations)


def test_point_radius_skips_stations_without_coordinates():
    stations = [make_station("x", None, None), make_station("y", 40.4167, -3.7033)]
    assert [s.station_id for s in filter_within_radius(stations, MADRID)] == ["y"]


def test_point_radius_boundary_is_inclusive():
    # 10 km due north of the center, within float rounding.
    lat_10km = MADRID[0] + 10.0 / 111.19492664455873
    stations = [make_station("edge", lat_10km, MADRID[1])]
    d = distance_km(MADRID[0], MADRID[1], lat_10km, MADRID[1])

    assert [s.station_id for s in filter_within_radius(stations, MADRID, d)] == ["edge"]


def test_corridor_result_has_a_vertex_within_width(madrid_stations, router):
    result = filter_along_corridor(madrid_stations, router.path, 5.0)

    assert {s.station_id for s in result} == {"1", "2", "3", "4", "5"}
    for station in result:
        nearest_vertex = min(
            distance_km(lat, lon, station.latitude, station.longitude) for lon, lat in router.path
        )
        assert nearest_vertex <= 5.0
        assert station.distance_km == pytest.approx(nearest_vertex)


def test_corridor_excludes_far_stations():
    route = ((-3.7033, 40.4167), (-3.7320, 40.3050))
    stations = [
        make_station("near", 40.4167, -3.7033),
        make_station("barcelona", 41.3874, 2.1686),
    ]
    assert [s.station_id for s in filter_along_corridor(stations, route, 5.0)] == ["near"]


def test_corridor_samples_vertices_not_segments():
    # Two vertices 100 km apart; a station on the straight line between them is missed.
    route = ((-3.7033, 40.0), (-3.7033, 40.9))
    midpoint = make_station("mid", 40.45, -3.7033)
    assert filter_along_corridor([midpoint], route, 5.0) == []


def test_corridor_prefilter_matches_exhaustive_check():
    route = ((-3.70, 40.40), (-3.65, 40.45), (-3.60, 40.50))
    # A grid of candidates around the route, some just inside and just outside.
    stations = [
        make_station(f"{i}-{j}", 40.30 + i * 0.02, -3.80 + j * 0.02)
        for i in range(15)
        for j in range(15)
    ]

    fast = {s.station_id for s in filter_along_corridor(stations, route, 5.0)}
    exhaustive = {
        s.station_id for s in stations if min_distance_to_route_km(s, route) <= 5.0
    }
    assert fast == exhaustive
    assert fast


def test_corridor_empty_polyline_matches_nothing(madrid_stations):
    assert filter_along_corridor(madrid_stations, (), 5.0) == []


def test_rank_along_route_is_stable_and_puts_missing_last():
    a = make_station("a", 40.0, -3.0).with_distance(2.0)
    b = make_station("b", 40.0, -3.0).with_distance(None)
    c = make_station("c", 40.0, -3.0).with_distance(1.0)
    d = make_station("d", 40.0, -3.0).with_distance(1.0)

    assert [s.station_id for s in rank_along_route([a, b, c, d])] == ["c", "d", "a", "b"]


def test_apply_spatial_query_dispatch(madrid_stations, router):
    point = apply_spatial_query(madrid_stations, PointRadius(center=MADRID))
    corridor = apply_spatial_query(madrid_stations, Corridor(polyline=router.path))

    assert [s.station_id for s in point] == ["1", "2", "3"]
    # Ranked by distance to the route: 4 and 5 sit on vertices.
    assert [s.station_id for s in corridor] == ["4", "5", "1", "2", "3"]

    with pytest.raises(TypeError):
        apply_spatial_query(madrid_stations, object())  # type: ignore[arg-type]
