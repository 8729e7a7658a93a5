from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request

from .cost_model import TrafficOverlay
from .geo_graph import component_summary
from .graph_errors import REASON_INVALID_QUERY
from .logging_utils import log_event
from .models import (
    AlternativesRequest,
    AlternativesResponse,
    BaselineRequest,
    BaselineResponse,
    CompareRequest,
    CompareResponse,
    EndpointQuery,
    GraphSummary,
    NearestResponse,
    PathOut,
    RouteRequest,
    RouteResponse,
    TrafficDelayIn,
)
from .route_service import RouteService, load_geo_graph
from .shortest_path import PathResult


@asynccontextmanager
async def lifespan(app: FastAPI):
    graph = load_geo_graph()
    app.state.route_service = RouteService.from_settings(graph) if graph is not None else None
    log_event("api_startup", graph_loaded=graph is not None)
    yield


app = FastAPI(title="Smart Mobility Router", version="0.1.0", lifespan=lifespan)


def route_service(request: Request) -> RouteService:
    service: RouteService | None = getattr(request.app.state, "route_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="graph not loaded")
    return service


RouteServiceDep = Annotated[RouteService, Depends(route_service)]


def _invalid_query(detail: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"reason_code": REASON_INVALID_QUERY, "message": detail})


def _resolve_endpoints(service: RouteService, query: EndpointQuery) -> tuple[str, str]:
    ids: list[str] = []
    for label, node_id, coords in (
        ("start", query.start_id, query.start),
        ("goal", query.goal_id, query.goal),
    ):
        if node_id is None and coords is not None:
            node_id = service.nearest_node(coords.lat, coords.lon, query.max_snap_distance_m)
            if node_id is None:
                raise _invalid_query(f"{label} coordinates not within snap radius")
        if node_id is None or not service.graph.has_node(node_id):
            raise _invalid_query(f"{label} node not found")
        ids.append(node_id)
    return ids[0], ids[1]


def _overlay(service: RouteService, delays: list[TrafficDelayIn]) -> TrafficOverlay:
    try:
        return service.traffic_overlay(delay.to_row() for delay in delays)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


def _path_out(service: RouteService, result: PathResult) -> PathOut:
    return PathOut(
        found=result.found,
        nodes=list(result.nodes),
        cost=result.cost,
        hops=result.hops,
        distance_m=service.path_distance_m(result),
        reason_code=result.reason_code,
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/graph", response_model=GraphSummary)
async def graph_summary(service: RouteServiceDep) -> GraphSummary:
    return GraphSummary(**component_summary(service.graph))


@app.get("/nearest", response_model=NearestResponse)
async def nearest(
    service: RouteServiceDep,
    lat: Annotated[float, Query(ge=-90, le=90)],
    lon: Annotated[float, Query(ge=-180, le=180)],
    max_m: Annotated[float | None, Query(gt=0)] = None,
) -> NearestResponse:
    node_id, distance_m = service.nearest_node_with_distance(lat, lon, max_m)
    if node_id is None:
        raise _invalid_query("no node within snap radius")
    return NearestResponse(node_id=node_id, distance_m=distance_m)


@app.post("/route", response_model=RouteResponse)
async def route(req: RouteRequest, service: RouteServiceDep) -> RouteResponse:
    start_id, goal_id = _resolve_endpoints(service, req)
    if req.metric == "time":
        result = service.shortest_path_by_time(start_id, goal_id, _overlay(service, req.traffic_delays))
    else:
        result = service.shortest_path_by_distance(start_id, goal_id)
    return RouteResponse(metric=req.metric, start_id=start_id, goal_id=goal_id, path=_path_out(service, result))


@app.post("/route/alternatives", response_model=AlternativesResponse)
async def route_alternatives(req: AlternativesRequest, service: RouteServiceDep) -> AlternativesResponse:
    start_id, goal_id = _resolve_endpoints(service, req)
    paths = service.alternative_routes(
        start_id,
        goal_id,
        metric=req.metric,
        overlay=_overlay(service, req.traffic_delays) if req.metric == "time" else None,
        k=req.k,
    )
    return AlternativesResponse(
        metric=req.metric,
        start_id=start_id,
        goal_id=goal_id,
        paths=[_path_out(service, p) for p in paths],
    )


@app.post("/baseline", response_model=BaselineResponse)
def baseline(req: BaselineRequest, service: RouteServiceDep) -> BaselineResponse:
    start_id, goal_id = _resolve_endpoints(service, req)
    result = service.sample_baseline(start_id, goal_id, req.trials, req.max_steps, seed=req.seed)
    return BaselineResponse(start_id=start_id, goal_id=goal_id, path=_path_out(service, result))


@app.post("/compare", response_model=CompareResponse)
def compare(req: CompareRequest, service: RouteServiceDep) -> CompareResponse:
    start_id, goal_id = _resolve_endpoints(service, req)
    comparison = service.compare(
        start_id,
        goal_id,
        overlay=_overlay(service, req.traffic_delays),
        trials=req.trials,
        max_steps=req.max_steps,
        seed=req.seed,
    )
    return CompareResponse(
        start_id=start_id,
        goal_id=goal_id,
        baseline=_path_out(service, comparison.baseline),
        by_time=_path_out(service, comparison.by_time),
        by_distance=_path_out(service, comparison.by_distance),
        baseline_extra_hops=comparison.baseline_extra_hops,
    )
