from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

Metric = Literal["time", "distance"]


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class TrafficDelayIn(BaseModel):
    """One overlay row: either a directed edge or a destination node."""

    source: str | None = None
    target: str | None = None
    node: str | None = None
    delay_s: float = Field(..., ge=0.0)

    @field_validator("delay_s")
    @classmethod
    def finite(cls, v: float) -> float:
        if v != v or v in (float("inf"), float("-inf")):
            raise ValueError("delay must be finite")
        return v

    @model_validator(mode="after")
    def one_key_shape(self) -> "TrafficDelayIn":
        has_edge = self.source is not None and self.target is not None
        has_node = self.node is not None
        if has_edge == has_node:
            raise ValueError("provide either source+target or node")
        return self

    def to_row(self) -> tuple[str, str, float] | tuple[str, float]:
        if self.node is not None:
            return (self.node, self.delay_s)
        return (str(self.source), str(self.target), self.delay_s)


class EndpointQuery(BaseModel):
    start_id: str | None = None
    goal_id: str | None = None
    start: LatLng | None = None
    goal: LatLng | None = None
    max_snap_distance_m: float | None = Field(default=None, gt=0.0)

    @model_validator(mode="after")
    def endpoints_present(self) -> "EndpointQuery":
        if self.start_id is None and self.start is None:
            raise ValueError("start_id or start coordinates required")
        if self.goal_id is None and self.goal is None:
            raise ValueError("goal_id or goal coordinates required")
        return self


class RouteRequest(EndpointQuery):
    metric: Metric = "time"
    traffic_delays: list[TrafficDelayIn] = Field(default_factory=list)


class AlternativesRequest(RouteRequest):
    k: int | None = Field(default=None, ge=1, le=32)


class BaselineRequest(EndpointQuery):
    trials: int | None = Field(default=None, ge=1, le=1_000_000)
    max_steps: int | None = Field(default=None, ge=1, le=1_000_000)
    seed: int | None = None


class CompareRequest(BaselineRequest):
    traffic_delays: list[TrafficDelayIn] = Field(default_factory=list)


class PathOut(BaseModel):
    found: bool
    nodes: list[str]
    cost: float
    hops: int
    distance_m: float
    reason_code: str


class RouteResponse(BaseModel):
    metric: Metric
    start_id: str
    goal_id: str
    path: PathOut


class AlternativesResponse(BaseModel):
    metric: Metric
    start_id: str
    goal_id: str
    paths: list[PathOut]


class BaselineResponse(BaseModel):
    start_id: str
    goal_id: str
    path: PathOut


class CompareResponse(BaseModel):
    start_id: str
    goal_id: str
    baseline: PathOut
    by_time: PathOut
    by_distance: PathOut
    baseline_extra_hops: int | None = None


class NearestResponse(BaseModel):
    node_id: str
    distance_m: float


class GraphSummary(BaseModel):
    node_count: int
    directed_edge_count: int
    component_count: int
    largest_component_nodes: int
    largest_component_ratio: float
