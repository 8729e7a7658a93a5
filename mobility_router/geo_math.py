from __future__ import annotations

import math

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon pairs (degrees)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    cross = math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2)
    a = math.sin(dphi / 2.0) ** 2 + cross
    # 1 - a taken directly, so antipodal points keep full precision.
    b = math.cos(dphi / 2.0) ** 2 - cross
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(max(0.0, a)), math.sqrt(max(0.0, b)))


def meters_per_degree_lat() -> float:
    return math.pi * EARTH_RADIUS_M / 180.0


def meters_per_degree_lon(lat: float) -> float:
    return meters_per_degree_lat() * max(0.0, math.cos(math.radians(lat)))
