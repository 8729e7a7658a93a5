"""Traversal cost models for the label-setting search.

Time mode uses one formula, ``length_m / average_speed_mps + delay_s``. The
traffic overlay states which delay lookup is active:

* ``keying="edge"``: delay of the directed edge ``(u, v)``.
* ``keying="node"``: delay of the destination node ``v`` (a signal wait paid
  on arrival), the simplified variant.

Distance mode returns the edge length and never consults the overlay.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Literal, Protocol

DEFAULT_AVERAGE_SPEED_MPS = 13.9

Metric = Literal["time", "distance"]
DelayKeying = Literal["edge", "node"]


def _delay_value(raw: object) -> float:
    if isinstance(raw, bool):
        raise ValueError("delay must be a number of seconds")
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"delay must be a number of seconds, got {raw!r}") from exc
    if not math.isfinite(value) or value < 0.0:
        raise ValueError(f"delay must be finite and non-negative, got {raw!r}")
    return value


@dataclass(frozen=True)
class TrafficOverlay:
    keying: DelayKeying = "edge"
    edge_delays: Mapping[tuple[str, str], float] = field(default_factory=dict)
    node_delays: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.keying not in ("edge", "node"):
            raise ValueError(f"unknown delay keying {self.keying!r}")
        if self.keying == "edge" and self.node_delays:
            raise ValueError("edge-keyed overlay cannot carry node delays")
        if self.keying == "node" and self.edge_delays:
            raise ValueError("node-keyed overlay cannot carry edge delays")
        for value in (*self.edge_delays.values(), *self.node_delays.values()):
            _delay_value(value)

    def delay(self, u: str, v: str) -> float:
        if self.keying == "edge":
            return float(self.edge_delays.get((u, v), 0.0))
        return float(self.node_delays.get(v, 0.0))

    def __len__(self) -> int:
        return len(self.edge_delays) + len(self.node_delays)


EMPTY_OVERLAY = TrafficOverlay()


def traffic_overlay_from_rows(rows: Iterable[tuple[object, ...]]) -> TrafficOverlay:
    """Build an overlay from ``(source, target, delay)`` or ``(node, delay)`` rows.

    Repeated keys keep the last delay. Mixing row shapes is rejected so that the
    active keying is never ambiguous.
    """
    edge_delays: dict[tuple[str, str], float] = {}
    node_delays: dict[str, float] = {}
    for row in rows:
        if len(row) == 3:
            edge_delays[(str(row[0]), str(row[1]))] = _delay_value(row[2])
        elif len(row) == 2:
            node_delays[str(row[0])] = _delay_value(row[1])
        else:
            raise ValueError(f"traffic row must have 2 or 3 fields, got {len(row)}")
    if edge_delays and node_delays:
        raise ValueError("traffic rows mix edge-keyed and node-keyed delays")
    if node_delays:
        return TrafficOverlay(keying="node", node_delays=node_delays)
    return TrafficOverlay(keying="edge", edge_delays=edge_delays)


class CostModel(Protocol):
    metric: Metric

    def edge_cost(self, u: str, v: str, base_weight: float) -> float: ...


@dataclass(frozen=True)
class TimeCostModel:
    average_speed_mps: float = DEFAULT_AVERAGE_SPEED_MPS
    overlay: TrafficOverlay = EMPTY_OVERLAY
    metric: Metric = field(default="time", init=False)

    def __post_init__(self) -> None:
        if not math.isfinite(self.average_speed_mps) or self.average_speed_mps <= 0.0:
            raise ValueError("average_speed_mps must be positive")

    def edge_cost(self, u: str, v: str, base_weight: float) -> float:
        return (float(base_weight) / self.average_speed_mps) + self.overlay.delay(u, v)


@dataclass(frozen=True)
class DistanceCostModel:
    metric: Metric = field(default="distance", init=False)

    def edge_cost(self, u: str, v: str, base_weight: float) -> float:
        return float(base_weight)
