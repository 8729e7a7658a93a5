from __future__ import annotations

import math

from .geo_graph import GeoGraph, grid_key
from .geo_math import haversine_m, meters_per_degree_lat, meters_per_degree_lon

DEFAULT_MAX_RING_RADIUS = 64

# Equidistant candidates resolve to the smallest node id, so results do not
# depend on dict or grid iteration order.
_Candidate = tuple[float, str]


def _ring_offsets(radius: int) -> tuple[tuple[int, int], ...]:
    if radius <= 0:
        return ((0, 0),)
    offsets: list[tuple[int, int]] = []
    for dx in range(-radius, radius + 1):
        offsets.append((dx, -radius))
        offsets.append((dx, radius))
    for dy in range(-radius + 1, radius):
        offsets.append((-radius, dy))
        offsets.append((radius, dy))
    return tuple(offsets)


def _better(candidate: _Candidate, best: _Candidate | None) -> bool:
    return best is None or candidate < best


def _grid_radius_for(graph: GeoGraph, *, lat: float, lon: float, max_distance_m: float) -> int | None:
    """Ring radius that covers every node within ``max_distance_m``, or None if unbounded."""
    if not math.isfinite(max_distance_m):
        return None
    dlat_deg = max_distance_m / meters_per_degree_lat()
    worst_lat = min(90.0, abs(lat) + dlat_deg)
    lon_scale = meters_per_degree_lon(worst_lat)
    if lon_scale <= 1e-6:
        return None
    dlon_deg = max_distance_m / lon_scale
    if lon - dlon_deg < -180.0 or lon + dlon_deg > 180.0:
        # Antimeridian wrap is not represented in the grid keys.
        return None
    return int(math.ceil(max(dlat_deg, dlon_deg) / graph.grid_bucket_deg))


def nearest_node_linear(graph: GeoGraph, *, lat: float, lon: float) -> tuple[str | None, float]:
    """Full scan over all nodes; returns ``(node_id, distance_m)``."""
    best: _Candidate | None = None
    for node_id, node in graph.nodes.items():
        dist = haversine_m(lat, lon, node.lat, node.lon)
        if not math.isfinite(dist):
            continue
        candidate = (dist, node_id)
        if _better(candidate, best):
            best = candidate
    if best is None:
        return None, float("inf")
    return best[1], best[0]


def _nearest_node_grid(graph: GeoGraph, *, lat: float, lon: float, radius: int) -> tuple[str | None, float]:
    center_key = grid_key(lat, lon, graph.grid_bucket_deg)
    best: _Candidate | None = None
    for ring in range(0, radius + 1):
        for dx, dy in _ring_offsets(ring):
            key = (center_key[0] + dy, center_key[1] + dx)
            for node_id in graph.grid_index.get(key, ()):
                node = graph.nodes.get(node_id)
                if node is None:
                    continue
                dist = haversine_m(lat, lon, node.lat, node.lon)
                if not math.isfinite(dist):
                    continue
                candidate = (dist, node_id)
                if _better(candidate, best):
                    best = candidate
    if best is None:
        return None, float("inf")
    return best[1], best[0]


def nearest_node_with_distance(
    graph: GeoGraph,
    *,
    lat: float,
    lon: float,
    max_distance_m: float,
    max_ring_radius: int = DEFAULT_MAX_RING_RADIUS,
) -> tuple[str | None, float]:
    """Nearest node within the snap radius.

    Returns ``(None, distance_m)`` when the closest node is farther than
    ``max_distance_m``; the distance is ``inf`` when no node was examined.
    """
    if not graph.nodes or not (math.isfinite(lat) and math.isfinite(lon)):
        return None, float("inf")
    if not max_distance_m >= 0.0:
        return None, float("inf")
    radius = _grid_radius_for(graph, lat=lat, lon=lon, max_distance_m=max_distance_m)
    if radius is None or radius > max(1, int(max_ring_radius)):
        node_id, dist = nearest_node_linear(graph, lat=lat, lon=lon)
    else:
        node_id, dist = _nearest_node_grid(graph, lat=lat, lon=lon, radius=radius)
    if node_id is None or dist > max_distance_m:
        return None, dist
    return node_id, dist


def nearest_node(
    graph: GeoGraph,
    *,
    lat: float,
    lon: float,
    max_distance_m: float,
    max_ring_radius: int = DEFAULT_MAX_RING_RADIUS,
) -> str | None:
    node_id, _distance_m = nearest_node_with_distance(
        graph,
        lat=lat,
        lon=lon,
        max_distance_m=max_distance_m,
        max_ring_radius=max_ring_radius,
    )
    return node_id
