from __future__ import annotations

import json
from pathlib import Path

import pytest

from mobility_router.graph_builder import build_geo_graph
from mobility_router.graph_errors import GraphDataError
from mobility_router.json_source import read_json_records


def test_streams_nodes_and_edges_with_field_aliases(tmp_path: Path) -> None:
    asset = tmp_path / "graph.json"
    asset.write_text(
        json.dumps(
            {
                "version": "pytest",
                "nodes": [
                    {"id": "a", "lat": 37.57, "lon": 126.98},
                    {"id": "b", "lat": 37.5709, "lon": 126.98},
                    {"id": "c", "lat": 37.5718, "lon": 126.98},
                ],
                "edges": [
                    {"u": "a", "v": "b", "distance_m": 100.0, "name": "Jong-ro"},
                    {"source": "b", "target": "c", "length": 75.5, "oneway": "yes"},
                ],
            }
        ),
        encoding="utf-8",
    )

    nodes, edges = read_json_records(asset)
    graph = build_geo_graph(nodes, edges)

    assert [n["id"] for n in nodes] == ["a", "b", "c"]
    assert edges[0]["roadName"] == "Jong-ro"
    assert graph.adjacency["a"] == (("b", 100.0),)
    assert graph.adjacency["c"] == ()
    assert ("c", 75.5) in graph.adjacency["b"]
    assert graph.edge("b", "a").road_name == "Jong-ro"


def test_non_object_items_are_ignored(tmp_path: Path) -> None:
    asset = tmp_path / "graph.json"
    asset.write_text('{"nodes": [1, {"id": "a", "lat": 0, "lon": 0}], "edges": ["x"]}', encoding="utf-8")

    nodes, edges = read_json_records(asset)

    assert nodes == [{"id": "a", "lat": 0, "lon": 0}]
    assert edges == []


def test_invalid_json_and_missing_file_raise(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text('{"nodes": [{"id": "a",', encoding="utf-8")

    with pytest.raises(GraphDataError):
        read_json_records(broken)
    with pytest.raises(GraphDataError):
        read_json_records(tmp_path / "missing.json")
