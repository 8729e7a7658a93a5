from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from .baseline_sampler import DEFAULT_MAX_STEPS, DEFAULT_TRIALS, sample_baseline
from .cost_model import (
    DEFAULT_AVERAGE_SPEED_MPS,
    EMPTY_OVERLAY,
    CostModel,
    DelayKeying,
    DistanceCostModel,
    Metric,
    TimeCostModel,
    TrafficOverlay,
    traffic_overlay_from_rows,
)
from .geo_graph import GeoGraph, component_summary, path_distance_m
from .graph_builder import build_geo_graph_with_stats
from .graph_errors import REASON_GRAPH_UNAVAILABLE, GraphDataError
from .graphml_source import read_graphml_records
from .json_source import read_json_records
from .k_shortest import k_shortest_paths
from .logging_utils import log_event
from .node_locator import DEFAULT_MAX_RING_RADIUS, nearest_node_with_distance
from .settings import settings
from .shortest_path import PathResult, shortest_path

GRAPHML_SUFFIXES = frozenset({".graphml", ".xml"})


def load_geo_graph_from_path(path: Path, *, grid_bucket_deg: float | None = None) -> GeoGraph:
    if not path.exists():
        raise GraphDataError(
            reason_code=REASON_GRAPH_UNAVAILABLE,
            message=f"graph asset not found: {path}",
            details={"path": str(path)},
        )
    if path.suffix.lower() in GRAPHML_SUFFIXES:
        node_records, edge_records = read_graphml_records(path)
    else:
        node_records, edge_records = read_json_records(path)
    graph, stats = build_geo_graph_with_stats(
        node_records,
        edge_records,
        grid_bucket_deg=float(grid_bucket_deg or settings.grid_bucket_deg),
    )
    if not graph.nodes:
        raise GraphDataError(
            reason_code=REASON_GRAPH_UNAVAILABLE,
            message=f"graph asset has no usable nodes: {path}",
            details={"path": str(path), "nodes_seen": stats.nodes_seen},
        )
    log_event("graph_loaded", path=str(path), **component_summary(graph))
    return graph


@lru_cache(maxsize=1)
def load_geo_graph() -> GeoGraph | None:
    """Configured graph asset, loaded once; None when unset or unreadable."""
    raw_path = settings.graph_asset_path
    if not raw_path:
        return None
    try:
        return load_geo_graph_from_path(Path(raw_path))
    except GraphDataError as exc:
        log_event("graph_load_failed", path=raw_path, reason_code=exc.reason_code, error_message=str(exc))
        return None


@dataclass(frozen=True)
class RouteComparison:
    baseline: PathResult
    by_time: PathResult
    by_distance: PathResult
    by_time_distance_m: float

    @property
    def baseline_extra_hops(self) -> int | None:
        if not (self.baseline.found and self.by_distance.found):
            return None
        return self.baseline.hops - self.by_distance.hops


class RouteService:
    """Query surface over one loaded graph."""

    def __init__(
        self,
        graph: GeoGraph,
        *,
        average_speed_mps: float = DEFAULT_AVERAGE_SPEED_MPS,
        max_snap_distance_m: float = 20.0,
        delay_keying: DelayKeying = "edge",
        max_ring_radius: int = DEFAULT_MAX_RING_RADIUS,
        baseline_trials: int = DEFAULT_TRIALS,
        baseline_max_steps: int = DEFAULT_MAX_STEPS,
        k_alternatives: int = 3,
    ) -> None:
        self.graph = graph
        self.average_speed_mps = float(average_speed_mps)
        self.max_snap_distance_m = float(max_snap_distance_m)
        self.delay_keying: DelayKeying = delay_keying
        self.max_ring_radius = int(max_ring_radius)
        self.baseline_trials = int(baseline_trials)
        self.baseline_max_steps = int(baseline_max_steps)
        self.k_alternatives = int(k_alternatives)

    @classmethod
    def from_settings(cls, graph: GeoGraph) -> RouteService:
        return cls(
            graph,
            average_speed_mps=settings.average_speed_mps,
            max_snap_distance_m=settings.max_snap_distance_m,
            delay_keying=settings.traffic_delay_keying,
            max_ring_radius=settings.nearest_max_ring_radius,
            baseline_trials=settings.baseline_trials,
            baseline_max_steps=settings.baseline_max_steps,
            k_alternatives=settings.k_alternatives,
        )

    def traffic_overlay(self, rows: Iterable[tuple[object, ...]]) -> TrafficOverlay:
        overlay = traffic_overlay_from_rows(rows)
        if len(overlay) and overlay.keying != self.delay_keying:
            raise ValueError(
                f"traffic rows are {overlay.keying}-keyed but the service is configured for "
                f"{self.delay_keying}-keyed delays"
            )
        return overlay

    def cost_model(self, metric: Metric, overlay: TrafficOverlay | None = None) -> CostModel:
        if metric == "time":
            return TimeCostModel(average_speed_mps=self.average_speed_mps, overlay=overlay or EMPTY_OVERLAY)
        if metric == "distance":
            return DistanceCostModel()
        raise ValueError(f"unknown metric {metric!r}")

    def nearest_node_with_distance(
        self,
        lat: float,
        lon: float,
        max_meters: float | None = None,
    ) -> tuple[str | None, float]:
        return nearest_node_with_distance(
            self.graph,
            lat=lat,
            lon=lon,
            max_distance_m=self.max_snap_distance_m if max_meters is None else float(max_meters),
            max_ring_radius=self.max_ring_radius,
        )

    def nearest_node(self, lat: float, lon: float, max_meters: float | None = None) -> str | None:
        node_id, _distance_m = self.nearest_node_with_distance(lat, lon, max_meters)
        return node_id

    def snap_query(
        self,
        *,
        start_lat: float,
        start_lon: float,
        goal_lat: float,
        goal_lon: float,
        max_meters: float | None = None,
    ) -> tuple[str | None, str | None]:
        return (
            self.nearest_node(start_lat, start_lon, max_meters),
            self.nearest_node(goal_lat, goal_lon, max_meters),
        )

    def shortest_path_by_time(
        self,
        start: str,
        goal: str,
        overlay: TrafficOverlay | None = None,
    ) -> PathResult:
        return shortest_path(self.graph, start=start, goal=goal, cost_model=self.cost_model("time", overlay))

    def shortest_path_by_distance(self, start: str, goal: str) -> PathResult:
        return shortest_path(self.graph, start=start, goal=goal, cost_model=self.cost_model("distance"))

    def alternative_routes(
        self,
        start: str,
        goal: str,
        *,
        metric: Metric = "time",
        overlay: TrafficOverlay | None = None,
        k: int | None = None,
    ) -> tuple[PathResult, ...]:
        return k_shortest_paths(
            self.graph,
            start=start,
            goal=goal,
            cost_model=self.cost_model(metric, overlay),
            k=self.k_alternatives if k is None else int(k),
        )

    def sample_baseline(
        self,
        start: str,
        goal: str,
        trials: int | None = None,
        max_steps: int | None = None,
        *,
        seed: int | None = None,
    ) -> PathResult:
        return sample_baseline(
            self.graph,
            start=start,
            goal=goal,
            trials=self.baseline_trials if trials is None else int(trials),
            max_steps=self.baseline_max_steps if max_steps is None else int(max_steps),
            seed=seed,
        )

    def path_distance_m(self, result: PathResult) -> float:
        if not result.found:
            return result.cost
        return path_distance_m(self.graph, result.nodes)

    def compare(
        self,
        start: str,
        goal: str,
        *,
        overlay: TrafficOverlay | None = None,
        trials: int | None = None,
        max_steps: int | None = None,
        seed: int | None = None,
    ) -> RouteComparison:
        baseline = self.sample_baseline(start, goal, trials, max_steps, seed=seed)
        by_time = self.shortest_path_by_time(start, goal, overlay)
        by_distance = self.shortest_path_by_distance(start, goal)
        return RouteComparison(
            baseline=baseline,
            by_time=by_time,
            by_distance=by_distance,
            by_time_distance_m=self.path_distance_m(by_time),
        )
