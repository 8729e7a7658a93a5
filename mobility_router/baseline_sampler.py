from __future__ import annotations

import random
import time

from .geo_graph import GeoGraph
from .graph_errors import REASON_INVALID_QUERY
from .logging_utils import log_event
from .shortest_path import PathResult, no_path

DEFAULT_TRIALS = 2000
DEFAULT_MAX_STEPS = 1000


def _clock_seed() -> int:
    return time.perf_counter_ns() ^ time.time_ns()


def _random_walk(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    max_steps: int,
    rng: random.Random,
) -> tuple[list[str], float, bool]:
    path = [start]
    distance_m = 0.0
    cur = start
    for _ in range(max_steps):
        if cur == goal:
            break
        row = graph.adjacency.get(cur, ())
        if not row:
            break
        nxt, length_m = row[rng.randrange(len(row))]
        path.append(nxt)
        distance_m += float(length_m)
        cur = nxt
    return path, distance_m, cur == goal


def sample_baseline_with_stats(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    trials: int = DEFAULT_TRIALS,
    max_steps: int = DEFAULT_MAX_STEPS,
    rng: random.Random | None = None,
    seed: int | None = None,
) -> tuple[PathResult, dict[str, int]]:
    """Monte Carlo random-walk baseline.

    Each trial follows uniformly random outgoing edges for at most
    ``max_steps`` hops. Among walks that reach ``goal`` the fewest hops wins,
    then the shortest physical distance; ``cost`` is that distance in meters.
    Results are non-deterministic unless ``seed`` or ``rng`` is supplied.
    """
    stats = {"trials": 0, "successful_walks": 0, "best_hops": -1}
    if start not in graph.nodes or goal not in graph.nodes:
        return no_path(REASON_INVALID_QUERY), stats

    if rng is None:
        rng = random.Random(_clock_seed() if seed is None else seed)

    best: tuple[int, float, list[str]] | None = None
    for _ in range(max(0, int(trials))):
        stats["trials"] += 1
        path, distance_m, reached = _random_walk(
            graph,
            start=start,
            goal=goal,
            max_steps=max(0, int(max_steps)),
            rng=rng,
        )
        if not reached:
            continue
        stats["successful_walks"] += 1
        ranking = (len(path), distance_m)
        if best is None or ranking < (best[0], best[1]):
            best = (len(path), distance_m, path)

    if best is None:
        result = no_path()
    else:
        result = PathResult(nodes=tuple(best[2]), cost=best[1])
        stats["best_hops"] = result.hops
    log_event(
        "baseline_sample_complete",
        start=start,
        goal=goal,
        max_steps=int(max_steps),
        found=result.found,
        cost=round(result.cost, 6),
        **stats,
    )
    return result, stats


def sample_baseline(
    graph: GeoGraph,
    *,
    start: str,
    goal: str,
    trials: int = DEFAULT_TRIALS,
    max_steps: int = DEFAULT_MAX_STEPS,
    rng: random.Random | None = None,
    seed: int | None = None,
) -> PathResult:
    result, _stats = sample_baseline_with_stats(
        graph,
        start=start,
        goal=goal,
        trials=trials,
        max_steps=max_steps,
        rng=rng,
        seed=seed,
    )
    return result
