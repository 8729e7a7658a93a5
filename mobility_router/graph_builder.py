from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from decimal import Decimal

from .geo_graph import DEFAULT_GRID_BUCKET_DEG, EdgeDetail, GeoGraph, Node, finalize_graph
from .geo_math import haversine_m
from .logging_utils import log_event, log_warning

ONEWAY_TOKENS = frozenset({"true", "yes", "1"})
ROAD_NAME_KEYS = ("roadName", "road_name", "name")

NodeRecord = Mapping[str, object]
EdgeRecord = Mapping[str, object]


@dataclass
class BuildStats:
    nodes_seen: int = 0
    nodes_kept: int = 0
    malformed_nodes: int = 0
    edges_seen: int = 0
    edges_kept: int = 0
    directed_edges: int = 0
    malformed_edges: int = 0
    dangling_edges: int = 0
    inferred_lengths: int = 0

    @property
    def skipped_records(self) -> int:
        return self.malformed_nodes + self.malformed_edges + self.dangling_edges


def _as_float(raw: object) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if not isinstance(raw, (int, float, str, Decimal)):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _parse_node(raw: NodeRecord) -> Node | None:
    node_id_raw = raw.get("id")
    if node_id_raw is None:
        return None
    node_id = str(node_id_raw).strip()
    if not node_id:
        return None
    lat = _as_float(raw.get("lat"))
    lon = _as_float(raw.get("lon"))
    if lat is None or lon is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return Node(id=node_id, lat=lat, lon=lon)


def is_oneway(raw: object) -> bool:
    if raw is None:
        return False
    return str(raw).strip().lower() in ONEWAY_TOKENS


def _parse_edge(raw: EdgeRecord) -> tuple[str, str, float | None, str | None, bool] | None:
    u = raw.get("source")
    v = raw.get("target")
    if u is None or v is None:
        return None
    u_id = str(u).strip()
    v_id = str(v).strip()
    if not u_id or not v_id:
        return None
    length = _as_float(raw.get("length"))
    # Negative and non-finite lengths are re-derived from the endpoints.
    if length is not None and (not math.isfinite(length) or length < 0.0):
        length = None
    road_name: str | None = None
    for key in ROAD_NAME_KEYS:
        value = raw.get(key)
        if value is not None and str(value).strip():
            road_name = str(value).strip()
            break
    return u_id, v_id, length, road_name, is_oneway(raw.get("oneway"))


def build_geo_graph_with_stats(
    node_records: Iterable[NodeRecord],
    edge_records: Iterable[EdgeRecord],
    *,
    grid_bucket_deg: float = DEFAULT_GRID_BUCKET_DEG,
) -> tuple[GeoGraph, BuildStats]:
    stats = BuildStats()
    nodes: dict[str, Node] = {}
    for raw_node in node_records:
        stats.nodes_seen += 1
        node = _parse_node(raw_node)
        if node is None:
            stats.malformed_nodes += 1
            continue
        nodes[node.id] = node
    stats.nodes_kept = len(nodes)

    adjacency_mut: dict[str, list[tuple[str, float]]] = {node_id: [] for node_id in nodes}
    edge_details: dict[tuple[str, str], EdgeDetail] = {}

    def _insert(u: str, v: str, detail: EdgeDetail) -> None:
        adjacency_mut[u].append((v, detail.length_m))
        prior = edge_details.get((u, v))
        if prior is None or detail.length_m < prior.length_m:
            edge_details[(u, v)] = detail
        stats.directed_edges += 1

    for raw_edge in edge_records:
        stats.edges_seen += 1
        parsed = _parse_edge(raw_edge)
        if parsed is None:
            stats.malformed_edges += 1
            continue
        u, v, length, road_name, oneway = parsed
        if u not in nodes or v not in nodes:
            stats.dangling_edges += 1
            continue
        if length is None:
            a, b = nodes[u], nodes[v]
            length = haversine_m(a.lat, a.lon, b.lat, b.lon)
            stats.inferred_lengths += 1
        detail = EdgeDetail(length_m=float(length), road_name=road_name)
        _insert(u, v, detail)
        if not oneway and u != v:
            # Independent reverse entry so each direction can carry its own delay.
            _insert(v, u, EdgeDetail(length_m=float(length), road_name=road_name))
        stats.edges_kept += 1

    graph = finalize_graph(
        nodes=nodes,
        adjacency_mut=adjacency_mut,
        edge_details=edge_details,
        grid_bucket_deg=grid_bucket_deg,
    )
    if stats.skipped_records:
        log_warning(
            "graph_build_skipped_records",
            malformed_nodes=stats.malformed_nodes,
            malformed_edges=stats.malformed_edges,
            dangling_edges=stats.dangling_edges,
        )
    log_event("graph_build_complete", **asdict(stats))
    return graph, stats


def build_geo_graph(
    node_records: Iterable[NodeRecord],
    edge_records: Iterable[EdgeRecord],
    *,
    grid_bucket_deg: float = DEFAULT_GRID_BUCKET_DEG,
) -> GeoGraph:
    graph, _stats = build_geo_graph_with_stats(
        node_records,
        edge_records,
        grid_bucket_deg=grid_bucket_deg,
    )
    return graph
