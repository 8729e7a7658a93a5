from __future__ import annotations

import pytest

from mobility_router.cost_model import DistanceCostModel, TimeCostModel, traffic_overlay_from_rows
from mobility_router.graph_builder import build_geo_graph
from mobility_router.k_shortest import k_shortest_paths, k_shortest_paths_with_stats


def _ladder_graph():
    # Two parallel corridors with rungs: several loopless A -> F routes.
    coords = {
        "A": (0.0, 0.0),
        "B": (0.0, 0.001),
        "C": (0.0, 0.002),
        "D": (0.001, 0.0),
        "E": (0.001, 0.001),
        "F": (0.001, 0.002),
    }
    edges = [
        ("A", "B", 10.0),
        ("B", "C", 10.0),
        ("C", "F", 10.0),
        ("A", "D", 12.0),
        ("D", "E", 12.0),
        ("E", "F", 12.0),
        ("B", "E", 5.0),
    ]
    return build_geo_graph(
        [{"id": k, "lat": lat, "lon": lon} for k, (lat, lon) in coords.items()],
        [{"source": u, "target": v, "length": length} for u, v, length in edges],
    )


def _abcd_graph():
    return build_geo_graph(
        [{"id": x, "lat": 37.57 + i * 0.0009, "lon": 126.98} for i, x in enumerate("ABCD")],
        [
            {"source": "A", "target": "B", "length": 100.0},
            {"source": "B", "target": "C", "length": 100.0},
            {"source": "C", "target": "D", "length": 100.0},
            {"source": "A", "target": "C", "length": 500.0},
        ],
    )


def test_paths_are_loopless_distinct_and_non_decreasing() -> None:
    paths = k_shortest_paths(_ladder_graph(), start="A", goal="F", cost_model=DistanceCostModel(), k=4)

    assert len(paths) == 4
    assert paths[0].nodes == ("A", "B", "E", "F")
    assert paths[0].cost == pytest.approx(27.0)
    assert paths[1].nodes == ("A", "B", "C", "F")
    costs = [p.cost for p in paths]
    assert costs == sorted(costs)
    assert len({p.nodes for p in paths}) == 4
    for p in paths:
        assert len(set(p.nodes)) == len(p.nodes)
        assert p.nodes[0] == "A" and p.nodes[-1] == "F"


def test_pool_exhaustion_returns_fewer_than_k() -> None:
    paths, stats = k_shortest_paths_with_stats(
        _abcd_graph(),
        start="A",
        goal="D",
        cost_model=DistanceCostModel(),
        k=5,
    )

    assert [p.nodes for p in paths] == [("A", "B", "C", "D"), ("A", "C", "D")]
    assert [p.cost for p in paths] == pytest.approx([300.0, 600.0])
    assert stats["termination_reason"] == "candidate_pool_exhausted"


def test_time_metric_orders_by_travel_time() -> None:
    model = TimeCostModel(overlay=traffic_overlay_from_rows([("B", "C", 1000.0)]))

    paths = k_shortest_paths(_abcd_graph(), start="A", goal="D", cost_model=model, k=2)

    assert paths[0].nodes == ("A", "C", "D")
    assert paths[1].nodes == ("A", "B", "C", "D")
    assert paths[1].cost == pytest.approx(300.0 / 13.9 + 1000.0)


def test_no_route_or_bad_k_yields_empty() -> None:
    graph = _abcd_graph()

    _paths, stats = k_shortest_paths_with_stats(
        graph, start="A", goal="missing", cost_model=DistanceCostModel(), k=3
    )
    assert _paths == ()
    assert stats["no_path_reason"] == "invalid_query"
    assert k_shortest_paths(graph, start="A", goal="D", cost_model=DistanceCostModel(), k=0) == ()


def test_start_equals_goal_gives_single_trivial_path() -> None:
    paths = k_shortest_paths(_abcd_graph(), start="C", goal="C", cost_model=DistanceCostModel(), k=3)

    assert len(paths) == 1
    assert paths[0].nodes == ("C",)
    assert paths[0].cost == 0.0
