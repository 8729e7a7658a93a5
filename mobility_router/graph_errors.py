from __future__ import annotations

from dataclasses import dataclass
from typing import Any

REASON_OK = "ok"
REASON_MALFORMED_RECORD = "malformed_record"
REASON_DANGLING_REFERENCE = "dangling_reference"
REASON_NO_ROUTE = "no_route"
REASON_INVALID_QUERY = "invalid_query"
REASON_NEGATIVE_EDGE_COST = "negative_edge_cost"
REASON_GRAPH_UNAVAILABLE = "graph_unavailable"

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        REASON_OK,
        REASON_MALFORMED_RECORD,
        REASON_DANGLING_REFERENCE,
        REASON_NO_ROUTE,
        REASON_INVALID_QUERY,
        REASON_NEGATIVE_EDGE_COST,
        REASON_GRAPH_UNAVAILABLE,
    }
)


@dataclass
class GraphDataError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class NegativeEdgeCostError(AssertionError):
    """A cost model produced a negative traversal cost.

    Label-setting search is only correct for non-negative costs, so this is a
    configuration bug and is never converted into a route result.
    """

    reason_code = REASON_NEGATIVE_EDGE_COST

    def __init__(self, u: str, v: str, cost: float) -> None:
        super().__init__(f"negative edge cost {cost!r} on {u}->{v}")
        self.u = u
        self.v = v
        self.cost = cost


def normalize_reason_code(reason_code: str, *, default: str = REASON_NO_ROUTE) -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
