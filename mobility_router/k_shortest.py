from __future__ import annotations

import heapq
from collections.abc import Iterator, Sequence

from .cost_model import CostModel
from .geo_graph import GeoGraph
from .logging_utils import log_event
from .shortest_path import PathResult, label_setting_search

Route = tuple[str, ...]


def _hop_cost(graph: GeoGraph, cost_model: CostModel, u: str, v: str) -> float:
    # Parallel edges: the search always relaxes the cheapest one.
    costs = [float(cost_model.edge_cost(u, v, weight)) for nxt, weight in graph.neighbors(u) if nxt == v]
    return min(costs, default=0.0)


def _prefix_cost(graph: GeoGraph, cost_model: CostModel, prefix: Route) -> float:
    return sum(_hop_cost(graph, cost_model, a, b) for a, b in zip(prefix, prefix[1:]))


def _edges_leaving_prefix(accepted: Sequence[PathResult], prefix: Route) -> set[tuple[str, str]]:
    depth = len(prefix)
    blocked: set[tuple[str, str]] = set()
    for route in accepted:
        if len(route.nodes) > depth and route.nodes[:depth] == prefix:
            blocked.add((route.nodes[depth - 1], route.nodes[depth]))
    return blocked


def _deviations(
    graph: GeoGraph,
    *,
    goal: str,
    cost_model: CostModel,
    accepted: Sequence[PathResult],
    search_stats: dict[str, int | str],
) -> Iterator[tuple[float, Route]]:
    """Routes that share a prefix with the last accepted route and then branch off."""
    last = accepted[-1].nodes
    for depth in range(1, len(last)):
        prefix = last[:depth]
        branch = label_setting_search(
            graph,
            start=prefix[-1],
            goal=goal,
            cost_model=cost_model,
            banned_nodes=frozenset(prefix[:-1]),
            banned_edges=_edges_leaving_prefix(accepted, prefix),
            stats=search_stats,
        )
        if branch.found:
            yield _prefix_cost(graph, cost_model, prefix) + branch.cost, prefix[:-1] + branch.nodes


def k_shortest_paths_with_stats(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    cost_model: CostModel,
    k: int,
) -> tuple[tuple[PathResult, ...], dict[str, int | str]]:
    """Yen's loopless k-shortest paths in non-decreasing cost order.

    Fewer than ``k`` routes come back when the graph runs out of loopless
    alternatives. ``start == goal`` yields the single trivial route.
    """
    if k <= 0:
        return (), {"spur_searches": 0, "generated_candidates": 0, "termination_reason": "invalid_k"}

    search_stats: dict[str, int | str] = {}
    best = label_setting_search(graph, start=start, goal=goal, cost_model=cost_model, stats=search_stats)
    if not best.found:
        return (), {
            "spur_searches": 0,
            "generated_candidates": 0,
            "termination_reason": "no_initial_path",
            "no_path_reason": best.reason_code,
        }

    accepted: list[PathResult] = [best]
    pool: list[tuple[float, Route]] = []
    queued: set[Route] = {best.nodes}
    spur_searches = 0
    generated = 0
    outcome = "k_paths_collected"

    while len(accepted) < k:
        spur_searches += max(0, len(accepted[-1].nodes) - 1)
        for cost, route in _deviations(
            graph,
            goal=goal,
            cost_model=cost_model,
            accepted=accepted,
            search_stats=search_stats,
        ):
            if route not in queued:
                queued.add(route)
                heapq.heappush(pool, (cost, route))
                generated += 1
        if not pool:
            outcome = "candidate_pool_exhausted"
            break
        cost, route = heapq.heappop(pool)
        accepted.append(PathResult(nodes=route, cost=cost))

    stats: dict[str, int | str] = {
        "spur_searches": spur_searches,
        "generated_candidates": generated,
        "explored_states": int(search_stats.get("explored_states", 0)),
        "termination_reason": outcome,
    }
    log_event(
        "k_shortest_complete",
        metric=cost_model.metric,
        start=start,
        goal=goal,
        k=k,
        paths=len(accepted),
        **stats,
    )
    return tuple(accepted), stats


def k_shortest_paths(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    cost_model: CostModel,
    k: int,
) -> tuple[PathResult, ...]:
    paths, _stats = k_shortest_paths_with_stats(graph, start=start, goal=goal, cost_model=cost_model, k=k)
    return paths
