from __future__ import annotations

import inspect
from pathlib import Path

from fastapi.testclient import TestClient

import mobility_router.main as main
import mobility_router.route_service as route_service_module
from mobility_router.graph_builder import build_geo_graph
from mobility_router.main import app, route_service
from mobility_router.route_service import RouteService, load_geo_graph


def _abcd_service() -> RouteService:
    graph = build_geo_graph(
        [
            {"id": "A", "lat": 37.5700, "lon": 126.9800},
            {"id": "B", "lat": 37.5709, "lon": 126.9800},
            {"id": "C", "lat": 37.5718, "lon": 126.9800},
            {"id": "D", "lat": 37.5727, "lon": 126.9800},
            {"id": "Z", "lat": 37.6000, "lon": 127.0000},
        ],
        [
            {"source": "A", "target": "B", "length": 100.0},
            {"source": "B", "target": "C", "length": 100.0},
            {"source": "C", "target": "D", "length": 100.0},
            {"source": "A", "target": "C", "length": 500.0},
        ],
    )
    return RouteService(graph, baseline_trials=200, baseline_max_steps=40)


def _client(monkeypatch) -> TestClient:
    monkeypatch.setattr(route_service_module.settings, "graph_asset_path", "")
    load_geo_graph.cache_clear()
    service = _abcd_service()
    app.dependency_overrides[route_service] = lambda: service
    return TestClient(app)


def test_health_and_graph_summary(monkeypatch) -> None:
    try:
        with _client(monkeypatch) as client:
            assert client.get("/health").json() == {"status": "ok"}
            summary = client.get("/graph").json()
            assert summary["node_count"] == 5
            assert summary["directed_edge_count"] == 8
            assert summary["component_count"] == 2
    finally:
        app.dependency_overrides.clear()
        load_geo_graph.cache_clear()


def test_route_by_distance_and_time(monkeypatch) -> None:
    try:
        with _client(monkeypatch) as client:
            resp = client.post("/route", json={"start_id": "A", "goal_id": "D", "metric": "distance"})
            assert resp.status_code == 200
            path = resp.json()["path"]
            assert path["nodes"] == ["A", "B", "C", "D"]
            assert path["cost"] == 300.0
            assert path["hops"] == 3

            resp = client.post(
                "/route",
                json={
                    "start_id": "A",
                    "goal_id": "D",
                    "traffic_delays": [{"source": "B", "target": "C", "delay_s": 1000}],
                },
            )
            body = resp.json()
            assert body["metric"] == "time"
            assert body["path"]["nodes"] == ["A", "C", "D"]
            assert body["path"]["distance_m"] == 600.0
    finally:
        app.dependency_overrides.clear()
        load_geo_graph.cache_clear()


def test_route_snaps_coordinates(monkeypatch) -> None:
    try:
        with _client(monkeypatch) as client:
            resp = client.post(
                "/route",
                json={
                    "start": {"lat": 37.57001, "lon": 126.98},
                    "goal": {"lat": 37.5727, "lon": 126.98},
                    "metric": "distance",
                },
            )
            assert resp.status_code == 200
            assert resp.json()["start_id"] == "A"
            assert resp.json()["goal_id"] == "D"

            resp = client.post(
                "/route",
                json={"start": {"lat": 37.5705, "lon": 126.98}, "goal_id": "D"},
            )
            assert resp.status_code == 404
            assert resp.json()["detail"]["reason_code"] == "invalid_query"
    finally:
        app.dependency_overrides.clear()
        load_geo_graph.cache_clear()


def test_unknown_node_and_unreachable_goal(monkeypatch) -> None:
    try:
        with _client(monkeypatch) as client:
            resp = client.post("/route", json={"start_id": "A", "goal_id": "nope"})
            assert resp.status_code == 404

            resp = client.post("/route", json={"start_id": "A", "goal_id": "Z"})
            assert resp.status_code == 200
            path = resp.json()["path"]
            assert path["found"] is False
            assert path["cost"] == -1.0
            assert path["reason_code"] == "no_route"
    finally:
        app.dependency_overrides.clear()
        load_geo_graph.cache_clear()


def test_invalid_traffic_rows_are_rejected(monkeypatch) -> None:
    try:
        with _client(monkeypatch) as client:
            negative = client.post(
                "/route",
                json={"start_id": "A", "goal_id": "D", "traffic_delays": [{"node": "B", "delay_s": -1}]},
            )
            assert negative.status_code == 422

            wrong_keying = client.post(
                "/route",
                json={"start_id": "A", "goal_id": "D", "traffic_delays": [{"node": "B", "delay_s": 5}]},
            )
            assert wrong_keying.status_code == 422
    finally:
        app.dependency_overrides.clear()
        load_geo_graph.cache_clear()


def test_nearest_alternatives_baseline_and_compare(monkeypatch) -> None:
    try:
        with _client(monkeypatch) as client:
            nearest = client.get("/nearest", params={"lat": 37.5709, "lon": 126.98})
            assert nearest.json() == {"node_id": "B", "distance_m": 0.0}
            assert client.get("/nearest", params={"lat": 37.5705, "lon": 126.98}).status_code == 404

            alts = client.post(
                "/route/alternatives",
                json={"start_id": "A", "goal_id": "D", "metric": "distance", "k": 3},
            ).json()
            assert [p["nodes"] for p in alts["paths"]] == [["A", "B", "C", "D"], ["A", "C", "D"]]

            baseline = client.post("/baseline", json={"start_id": "A", "goal_id": "D", "seed": 5}).json()
            assert baseline["path"]["found"] is True
            assert baseline["path"]["nodes"][0] == "A"
            assert baseline["path"]["nodes"][-1] == "D"

            compare = client.post(
                "/compare",
                json={
                    "start_id": "A",
                    "goal_id": "D",
                    "seed": 5,
                    "traffic_delays": [{"source": "B", "target": "C", "delay_s": 1000}],
                },
            ).json()
            assert compare["by_time"]["nodes"] == ["A", "C", "D"]
            assert compare["by_distance"]["nodes"] == ["A", "B", "C", "D"]
            assert compare["baseline_extra_hops"] == compare["baseline"]["hops"] - 3
    finally:
        app.dependency_overrides.clear()
        load_geo_graph.cache_clear()


def test_missing_graph_returns_503(monkeypatch) -> None:
    monkeypatch.setattr(route_service_module.settings, "graph_asset_path", "")
    load_geo_graph.cache_clear()
    try:
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert client.get("/graph").status_code == 503
            assert client.post("/route", json={"start_id": "A", "goal_id": "D"}).status_code == 503
    finally:
        load_geo_graph.cache_clear()


def test_lifespan_loads_configured_graph(monkeypatch, tmp_path: Path) -> None:
    asset = tmp_path / "tiny.json"
    asset.write_text(
        '{"nodes": [{"id": "a", "lat": 0.0, "lon": 0.0}, {"id": "b", "lat": 0.0, "lon": 0.001}],'
        ' "edges": [{"u": "a", "v": "b", "length": 111.0}]}',
        encoding="utf-8",
    )
    monkeypatch.setattr(route_service_module.settings, "graph_asset_path", str(asset))
    load_geo_graph.cache_clear()
    try:
        with TestClient(app) as client:
            assert client.get("/graph").json()["node_count"] == 2
            resp = client.post("/route", json={"start_id": "b", "goal_id": "a", "metric": "distance"})
            assert resp.json()["path"]["cost"] == 111.0
    finally:
        load_geo_graph.cache_clear()


def test_sampling_endpoints_run_off_the_event_loop() -> None:
    # Sync handlers are dispatched to the threadpool, so /health stays responsive.
    assert not inspect.iscoroutinefunction(main.baseline)
    assert not inspect.iscoroutinefunction(main.compare)
