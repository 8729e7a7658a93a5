from __future__ import annotations

import heapq
import math
from collections.abc import Collection
from dataclasses import dataclass
from math import inf

from .cost_model import (
    DEFAULT_AVERAGE_SPEED_MPS,
    EMPTY_OVERLAY,
    CostModel,
    DistanceCostModel,
    TimeCostModel,
    TrafficOverlay,
)
from .geo_graph import GeoGraph
from .graph_errors import REASON_INVALID_QUERY, REASON_NO_ROUTE, REASON_OK, NegativeEdgeCostError
from .logging_utils import log_event

NO_PATH_COST = -1.0


@dataclass(frozen=True)
class PathResult:
    nodes: tuple[str, ...]
    cost: float
    reason_code: str = REASON_OK

    @property
    def found(self) -> bool:
        return bool(self.nodes)

    @property
    def hops(self) -> int:
        return max(0, len(self.nodes) - 1)


def no_path(reason_code: str = REASON_NO_ROUTE) -> PathResult:
    return PathResult(nodes=(), cost=NO_PATH_COST, reason_code=reason_code)


def _checked_cost(cost_model: CostModel, u: str, v: str, weight: float) -> float:
    cost = float(cost_model.edge_cost(u, v, weight))
    if math.isnan(cost) or cost < 0.0:
        raise NegativeEdgeCostError(u, v, cost)
    return cost


def _reconstruct(prev: dict[str, str], start: str, goal: str) -> tuple[str, ...]:
    path = [goal]
    cur = goal
    while cur != start:
        cur = prev[cur]
        path.append(cur)
    path.reverse()
    return tuple(path)


def label_setting_search(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    cost_model: CostModel,
    banned_nodes: Collection[str] = (),
    banned_edges: Collection[tuple[str, str]] = (),
    stats: dict[str, int | str] | None = None,
) -> PathResult:
    """Dijkstra with a lazy-deletion heap.

    Outdated frontier entries stay in the heap and are skipped when popped.
    ``banned_nodes`` / ``banned_edges`` are used by the alternative-route search.
    """
    counters = stats if stats is not None else {}
    counters.setdefault("explored_states", 0)
    counters.setdefault("relaxations", 0)
    counters.setdefault("stale_pops", 0)

    if start not in graph.nodes or goal not in graph.nodes:
        counters["termination_reason"] = "invalid_query"
        return no_path(REASON_INVALID_QUERY)
    if start in banned_nodes or goal in banned_nodes:
        counters["termination_reason"] = "start_or_goal_blocked"
        return no_path()
    if start == goal:
        counters["termination_reason"] = "start_is_goal"
        return PathResult(nodes=(start,), cost=0.0)

    dist: dict[str, float] = {start: 0.0}
    prev: dict[str, str] = {}
    frontier: list[tuple[float, str]] = [(0.0, start)]
    termination = "frontier_exhausted"
    while frontier:
        d_u, u = heapq.heappop(frontier)
        if d_u > dist.get(u, inf):
            counters["stale_pops"] = int(counters["stale_pops"]) + 1
            continue
        counters["explored_states"] = int(counters["explored_states"]) + 1
        if u == goal:
            termination = "goal_settled"
            break
        for v, weight in graph.adjacency.get(u, ()):
            if v in banned_nodes or (u, v) in banned_edges:
                continue
            candidate = d_u + _checked_cost(cost_model, u, v, weight)
            if candidate < dist.get(v, inf):
                dist[v] = candidate
                prev[v] = u
                heapq.heappush(frontier, (candidate, v))
                counters["relaxations"] = int(counters["relaxations"]) + 1
    counters["termination_reason"] = termination

    goal_cost = dist.get(goal, inf)
    if not math.isfinite(goal_cost):
        return no_path()
    return PathResult(nodes=_reconstruct(prev, start, goal), cost=goal_cost)


def shortest_path_with_stats(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    cost_model: CostModel,
) -> tuple[PathResult, dict[str, int | str]]:
    stats: dict[str, int | str] = {}
    result = label_setting_search(graph, start=start, goal=goal, cost_model=cost_model, stats=stats)
    log_event(
        "shortest_path_complete",
        metric=cost_model.metric,
        start=start,
        goal=goal,
        found=result.found,
        reason_code=result.reason_code,
        hops=result.hops,
        cost=round(result.cost, 6),
        **stats,
    )
    return result, stats


def shortest_path(graph: GeoGraph, *, start: str, goal: str, cost_model: CostModel) -> PathResult:
    result, _stats = shortest_path_with_stats(graph, start=start, goal=goal, cost_model=cost_model)
    return result


def shortest_path_by_time(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    overlay: TrafficOverlay = EMPTY_OVERLAY,
    average_speed_mps: float = DEFAULT_AVERAGE_SPEED_MPS,
) -> PathResult:
    return shortest_path(
        graph,
        start=start,
        goal=goal,
        cost_model=TimeCostModel(average_speed_mps=average_speed_mps, overlay=overlay),
    )


def shortest_path_by_distance(graph: GeoGraph, *, start: str, goal: str) -> PathResult:
    return shortest_path(graph, start=start, goal=goal, cost_model=DistanceCostModel())
