from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

from .geo_math import haversine_m

DEFAULT_GRID_BUCKET_DEG = 0.01


@dataclass(frozen=True)
class Node:
    id: str
    lat: float
    lon: float


@dataclass(frozen=True)
class EdgeDetail:
    length_m: float
    road_name: str | None = None


@dataclass(frozen=True)
class GeoGraph:
    """Read-only road graph.

    ``adjacency`` rows keep input order and hold ``(neighbor_id, length_m)``
    pairs. Parallel edges stay in the adjacency rows; ``edge_details`` keeps the
    shortest one per directed pair.
    """

    nodes: dict[str, Node]
    adjacency: dict[str, tuple[tuple[str, float], ...]]
    edge_details: dict[tuple[str, str], EdgeDetail]
    grid_index: dict[tuple[int, int], tuple[str, ...]]
    grid_bucket_deg: float = DEFAULT_GRID_BUCKET_DEG

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def neighbors(self, node_id: str) -> tuple[tuple[str, float], ...]:
        return self.adjacency.get(node_id, ())

    def edge(self, u: str, v: str) -> EdgeDetail | None:
        return self.edge_details.get((u, v))

    @property
    def directed_edge_count(self) -> int:
        return sum(len(row) for row in self.adjacency.values())


def grid_key(lat: float, lon: float, bucket_deg: float = DEFAULT_GRID_BUCKET_DEG) -> tuple[int, int]:
    return (int(math.floor(lat / bucket_deg)), int(math.floor(lon / bucket_deg)))


def finalize_graph(
    *,
    nodes: dict[str, Node],
    adjacency_mut: dict[str, list[tuple[str, float]]],
    edge_details: dict[tuple[str, str], EdgeDetail],
    grid_bucket_deg: float = DEFAULT_GRID_BUCKET_DEG,
) -> GeoGraph:
    # Every ingested node owns a row, even with degree zero.
    adjacency = {node_id: tuple(adjacency_mut.get(node_id, ())) for node_id in nodes}

    grid_mut: dict[tuple[int, int], list[str]] = {}
    for node_id, node in nodes.items():
        grid_mut.setdefault(grid_key(node.lat, node.lon, grid_bucket_deg), []).append(node_id)
    grid_index = {key: tuple(values) for key, values in grid_mut.items()}

    return GeoGraph(
        nodes=nodes,
        adjacency=adjacency,
        edge_details=edge_details,
        grid_index=grid_index,
        grid_bucket_deg=float(grid_bucket_deg),
    )


def path_distance_m(graph: GeoGraph, nodes: tuple[str, ...] | list[str]) -> float:
    total = 0.0
    for idx in range(1, len(nodes)):
        detail = graph.edge_details.get((nodes[idx - 1], nodes[idx]))
        if detail is not None:
            total += max(0.0, float(detail.length_m))
            continue
        a = graph.nodes[nodes[idx - 1]]
        b = graph.nodes[nodes[idx]]
        total += haversine_m(a.lat, a.lon, b.lat, b.lon)
    return max(0.0, total)


def component_summary(graph: GeoGraph) -> dict[str, float | int]:
    """Weakly connected component statistics (edge direction ignored)."""
    undirected: dict[str, set[str]] = {node_id: set() for node_id in graph.nodes}
    for src, row in graph.adjacency.items():
        for dst, _length in row:
            undirected[src].add(dst)
            undirected[dst].add(src)
    component_by_node: dict[str, int] = {}
    component_sizes: dict[int, int] = {}
    component_idx = 0
    for node_id in graph.nodes:
        if node_id in component_by_node:
            continue
        component_idx += 1
        q: deque[str] = deque([node_id])
        size = 0
        while q:
            current = q.popleft()
            if current in component_by_node:
                continue
            component_by_node[current] = component_idx
            size += 1
            for nxt in undirected[current]:
                if nxt not in component_by_node:
                    q.append(nxt)
        component_sizes[component_idx] = size
    largest = max(component_sizes.values(), default=0)
    return {
        "node_count": len(graph.nodes),
        "directed_edge_count": graph.directed_edge_count,
        "component_count": component_idx,
        "largest_component_nodes": largest,
        "largest_component_ratio": (float(largest) / float(len(graph.nodes))) if graph.nodes else 0.0,
    }
