from __future__ import annotations

import random

from mobility_router.graph_builder import build_geo_graph
from mobility_router.node_locator import (
    _grid_radius_for,
    _ring_offsets,
    nearest_node,
    nearest_node_linear,
    nearest_node_with_distance,
)


def _make_graph(points: list[tuple[str, float, float]], *, grid_bucket_deg: float = 0.01):
    return build_geo_graph(
        [{"id": node_id, "lat": lat, "lon": lon} for node_id, lat, lon in points],
        [],
        grid_bucket_deg=grid_bucket_deg,
    )


def test_ring_offsets_cover_square_perimeter_only() -> None:
    assert _ring_offsets(0) == ((0, 0),)
    ring_two = _ring_offsets(2)
    assert len(ring_two) == 16
    assert len(set(ring_two)) == 16
    assert all(max(abs(dx), abs(dy)) == 2 for dx, dy in ring_two)


def test_exact_coordinate_snaps_with_zero_distance() -> None:
    graph = _make_graph([("A", 37.5700, 126.9800), ("B", 37.5709, 126.9800)])

    node_id, distance_m = nearest_node_with_distance(graph, lat=37.5709, lon=126.9800, max_distance_m=20.0)

    assert node_id == "B"
    assert distance_m == 0.0


def test_snap_radius_is_respected() -> None:
    graph = _make_graph([("A", 37.5700, 126.9800)])

    # 0.0001 deg of latitude is roughly 11 m.
    assert nearest_node(graph, lat=37.5701, lon=126.9800, max_distance_m=20.0) == "A"
    node_id, distance_m = nearest_node_with_distance(graph, lat=37.5705, lon=126.9800, max_distance_m=20.0)
    assert node_id is None
    assert 50.0 < distance_m < 60.0


def test_result_distance_never_exceeds_snap_radius() -> None:
    rng = random.Random(11)
    points = [(f"n{i}", 37.56 + rng.random() * 0.02, 126.97 + rng.random() * 0.02) for i in range(60)]
    graph = _make_graph(points, grid_bucket_deg=0.001)

    for _ in range(40):
        node_id, distance_m = nearest_node_with_distance(
            graph,
            lat=37.56 + rng.random() * 0.02,
            lon=126.97 + rng.random() * 0.02,
            max_distance_m=150.0,
        )
        if node_id is not None:
            assert distance_m <= 150.0


def test_equidistant_candidates_resolve_to_smallest_id() -> None:
    graph = _make_graph([("b", 0.0, 0.0001), ("a", 0.0, -0.0001), ("c", 0.0001, 0.0)])

    # "c" sits at the same distance along the meridian; "a" still wins on id.
    node_id, _distance_m = nearest_node_with_distance(graph, lat=0.0, lon=0.0, max_distance_m=100.0)

    assert node_id == "a"
    assert nearest_node_linear(graph, lat=0.0, lon=0.0)[0] == "a"


def test_grid_scan_agrees_with_linear_scan() -> None:
    rng = random.Random(7)
    points = [(f"n{i:03d}", 37.56 + rng.random() * 0.03, 126.97 + rng.random() * 0.03) for i in range(200)]
    graph = _make_graph(points, grid_bucket_deg=0.001)
    max_m = 500.0

    assert _grid_radius_for(graph, lat=37.57, lon=126.98, max_distance_m=max_m) is not None

    for _ in range(100):
        lat = 37.55 + rng.random() * 0.05
        lon = 126.96 + rng.random() * 0.05
        linear_id, linear_dist = nearest_node_linear(graph, lat=lat, lon=lon)
        grid_id, grid_dist = nearest_node_with_distance(graph, lat=lat, lon=lon, max_distance_m=max_m)
        if linear_dist <= max_m:
            assert grid_id == linear_id
            assert grid_dist == linear_dist
        else:
            assert grid_id is None


def test_small_ring_cap_falls_back_to_linear_scan() -> None:
    graph = _make_graph([("far", 37.60, 127.00), ("near", 37.5702, 126.9800)], grid_bucket_deg=0.0001)

    node_id = nearest_node(graph, lat=37.5700, lon=126.9800, max_distance_m=10_000.0, max_ring_radius=2)

    assert node_id == "near"


def test_unbounded_radius_and_empty_graph() -> None:
    graph = _make_graph([("A", 10.0, 10.0)])
    assert nearest_node(graph, lat=-10.0, lon=-10.0, max_distance_m=float("inf")) == "A"

    empty = _make_graph([])
    assert nearest_node_with_distance(empty, lat=0.0, lon=0.0, max_distance_m=20.0) == (None, float("inf"))


def test_antimeridian_query_uses_linear_scan() -> None:
    graph = _make_graph([("east", 0.0, 179.9999), ("west", 0.0, -179.9999)])

    node_id, distance_m = nearest_node_with_distance(graph, lat=0.0, lon=-179.99995, max_distance_m=50.0)

    assert node_id == "west"
    assert distance_m < 10.0


def test_nan_snap_radius_matches_nothing() -> None:
    graph = _make_graph([("far", 50.0, 10.0)])

    node_id, _distance_m = nearest_node_with_distance(graph, lat=37.57, lon=126.98, max_distance_m=float("nan"))

    assert node_id is None
    assert nearest_node(graph, lat=50.0, lon=10.0, max_distance_m=float("nan")) is None
