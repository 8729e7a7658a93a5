from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from mobility_router.cost_model import TrafficOverlay, traffic_overlay_from_rows
from mobility_router.graph_errors import GraphDataError
from mobility_router.logging_utils import configure_logger
from mobility_router.route_service import RouteService, load_geo_graph_from_path
from mobility_router.settings import settings
from mobility_router.shortest_path import PathResult


def dash_route(nodes: Sequence[str]) -> str:
    return "-".join(nodes)


def _edge_delay(raw: str) -> tuple[str, str, float]:
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 3:
        raise argparse.ArgumentTypeError("edge delay must look like SOURCE,TARGET,SECONDS")
    try:
        return parts[0], parts[1], float(parts[2])
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid delay seconds: {parts[2]!r}") from e


def _node_delay(raw: str) -> tuple[str, float]:
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError("node delay must look like NODE,SECONDS")
    try:
        return parts[0], float(parts[1])
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid delay seconds: {parts[1]!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare a Monte Carlo random-walk baseline with the exact shortest route."
    )
    parser.add_argument(
        "--graph",
        type=Path,
        default=Path(settings.graph_asset_path) if settings.graph_asset_path else None,
        help="GraphML (.graphml) or JSON graph asset.",
    )
    parser.add_argument("--start-id", default=None)
    parser.add_argument("--goal-id", default=None)
    parser.add_argument("--start", nargs=2, type=float, metavar=("LAT", "LON"), default=None)
    parser.add_argument("--goal", nargs=2, type=float, metavar=("LAT", "LON"), default=None)
    parser.add_argument("--snap-m", type=float, default=settings.max_snap_distance_m)
    parser.add_argument(
        "--delay",
        action="append",
        type=_edge_delay,
        default=[],
        help="Directed edge delay SOURCE,TARGET,SECONDS (repeatable).",
    )
    parser.add_argument(
        "--node-delay",
        action="append",
        type=_node_delay,
        default=[],
        help="Delay charged on arrival at NODE: NODE,SECONDS (repeatable).",
    )
    parser.add_argument("--trials", type=int, default=settings.baseline_trials)
    parser.add_argument("--max-steps", type=int, default=settings.baseline_max_steps)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--precision", type=int, default=6)
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL for this run (JSON events go to stderr).")
    return parser


def _resolve(
    service: RouteService,
    *,
    node_id: str | None,
    coords: list[float] | None,
    snap_m: float,
) -> str | None:
    if node_id is not None:
        return node_id if service.graph.has_node(node_id) else None
    if coords is None:
        return None
    return service.nearest_node(coords[0], coords[1], snap_m)


def _total(result: PathResult, value: float, precision: int) -> str:
    return f"{(value if result.found else -1.0):.{precision}f}"


def render_report(
    *,
    service: RouteService,
    start_id: str,
    goal_id: str,
    overlay: TrafficOverlay,
    trials: int,
    max_steps: int,
    seed: int | None,
    precision: int,
) -> list[str]:
    comparison = service.compare(
        start_id,
        goal_id,
        overlay=overlay,
        trials=trials,
        max_steps=max_steps,
        seed=seed,
    )
    mc = comparison.baseline
    dj = comparison.by_time
    return [
        f"[Random Sampling] Path distance (m): {_total(mc, mc.cost, precision)}",
        f"[Random Sampling] Vehicle route: {dash_route(mc.nodes)}",
        f"[Dijkstra] Total travel time + traffic delay (sec): {_total(dj, dj.cost, precision)}",
        f"[Dijkstra] Path distance (m): {_total(dj, comparison.by_time_distance_m, precision)}",
        f"[Dijkstra] Vehicle route: {dash_route(dj.nodes)}",
    ]


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        configure_logger(level=args.log_level)
    if args.graph is None:
        print("Graph load failed: no graph path given (--graph or GRAPH_ASSET_PATH)", file=sys.stderr)
        return 1
    try:
        graph = load_geo_graph_from_path(args.graph)
    except GraphDataError as e:
        print(f"Graph load failed: {e}", file=sys.stderr)
        return 1

    try:
        overlay = traffic_overlay_from_rows([*args.delay, *args.node_delay])
    except ValueError as e:
        print(f"Invalid traffic delays: {e}", file=sys.stderr)
        return 2

    service = RouteService.from_settings(graph)
    start_id = _resolve(service, node_id=args.start_id, coords=args.start, snap_m=args.snap_m)
    goal_id = _resolve(service, node_id=args.goal_id, coords=args.goal, snap_m=args.snap_m)
    if start_id is None or goal_id is None:
        print("Node not found", file=sys.stderr)
        return 2

    for line in render_report(
        service=service,
        start_id=start_id,
        goal_id=goal_id,
        overlay=overlay,
        trials=max(1, int(args.trials)),
        max_steps=max(1, int(args.max_steps)),
        seed=args.seed,
        precision=max(0, int(args.precision)),
    ):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
