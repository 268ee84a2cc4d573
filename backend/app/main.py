from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .directions import directions_text, route_directions
from .graph_store import GraphStore
from .logging_utils import log_event
from .map_errors import MapDataError, UnknownLocation, normalize_reason_code
from .metrics_store import metrics_snapshot, record_query
from .models import (
    AutocompleteResponse,
    CacheClearResponse,
    InstructionOut,
    LocationOut,
    RasterResponse,
    RouteRequest,
    RouteResponse,
    SearchResponse,
)
from .osm_loader import load_configured_graph
from .rasterer import BoundingBox, select_tiles
from .route_cache import clear_route_cache, get_cached_route, route_cache_key, route_cache_stats, set_cached_route
from .route_planner import plan_route


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.graph = load_configured_graph()
    yield


app = FastAPI(title="Map Router", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def map_graph(request: Request) -> GraphStore:
    graph: GraphStore | None = getattr(request.app.state, "graph", None)  # type: ignore[attr-defined]
    if graph is None:
        raise HTTPException(status_code=503, detail="map graph not loaded")
    return graph


GraphDep = Annotated[GraphStore, Depends(map_graph)]


def _error_detail(e: MapDataError) -> dict[str, str]:
    return {"reason_code": normalize_reason_code(e.reason_code), "message": str(e)}


def _record_map_error(path: str, e: MapDataError, *, status_code: int) -> None:
    record_query("map_data_error", duration_ms=0.0, outcome="error")
    log_event(
        "map_data_error",
        level=logging.WARNING,
        path=path,
        reason_code=e.reason_code,
        error_message=str(e),
        status_code=status_code,
    )


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Backend is running. Visit /docs for the API UI.", "docs": "/docs"}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/raster", response_model=RasterResponse)
def raster(
    ullon: float,
    ullat: float,
    lrlon: float,
    lrlat: float,
    w: float,
    h: float,
) -> RasterResponse:
    t0 = time.perf_counter()
    result = select_tiles(
        BoundingBox(ullon=ullon, ullat=ullat, lrlon=lrlon, lrlat=lrlat),
        w,
        h,
    )
    duration_ms = round((time.perf_counter() - t0) * 1000, 2)
    record_query(
        "raster",
        duration_ms=duration_ms,
        outcome="ok" if result.query_success else "unsuccessful",
    )
    log_event(
        "raster_request",
        query_box=[ullon, ullat, lrlon, lrlat],
        viewport=[w, h],
        depth=result.depth,
        x_range=list(result.x_range),
        y_range=list(result.y_range),
        query_success=result.query_success,
        failure_reason=result.failure_reason,
        duration_ms=duration_ms,
    )
    return RasterResponse(
        render_grid=result.render_grid,
        raster_ul_lon=result.bounds.ullon,
        raster_ul_lat=result.bounds.ullat,
        raster_lr_lon=result.bounds.lrlon,
        raster_lr_lat=result.bounds.lrlat,
        depth=result.depth,
        query_success=result.query_success,
        failure_reason=result.failure_reason,
    )


@app.post("/route", response_model=RouteResponse)
def compute_route(req: RouteRequest, graph: GraphDep) -> RouteResponse:
    request_id = str(uuid.uuid4())
    t0 = time.perf_counter()

    key = route_cache_key(graph.graph_id, req.start.lon, req.start.lat, req.end.lon, req.end.lat)
    plan = get_cached_route(key)
    cache_hit = plan is not None
    if plan is None:
        plan = plan_route(
            graph,
            start_lon=req.start.lon,
            start_lat=req.start.lat,
            goal_lon=req.end.lon,
            goal_lat=req.end.lat,
        )
        set_cached_route(key, plan)

    instructions = route_directions(graph, plan.nodes)
    duration_ms = round((time.perf_counter() - t0) * 1000, 2)
    record_query("route", duration_ms=duration_ms, outcome="ok" if plan.found else "unsuccessful")
    log_event(
        "route_request",
        request_id=request_id,
        start=req.start.model_dump(),
        end=req.end.model_dump(),
        found=plan.found,
        node_count=len(plan.nodes),
        distance_miles=round(plan.distance_miles, 6),
        instruction_count=len(instructions),
        no_path_reason=plan.no_path_reason,
        cache_hit=cache_hit,
        duration_ms=duration_ms,
    )
    return RouteResponse(
        found=plan.found,
        nodes=list(plan.nodes),
        distance_miles=plan.distance_miles,
        start_vertex=plan.start_vertex,
        goal_vertex=plan.goal_vertex,
        explored_states=plan.explored_states,
        no_path_reason=plan.no_path_reason,
        directions=[
            InstructionOut(
                category=instruction.category,
                label=instruction.category.label,
                way=instruction.way,
                distance_miles=instruction.distance,
                text=instruction.render(),
            )
            for instruction in instructions
        ],
        directions_text=directions_text(instructions),
    )


@app.get("/search/autocomplete", response_model=AutocompleteResponse)
def autocomplete(graph: GraphDep, term: Annotated[str, Query(max_length=200)] = "") -> AutocompleteResponse:
    t0 = time.perf_counter()
    names = graph.locations_by_prefix(term)
    duration_ms = round((time.perf_counter() - t0) * 1000, 2)
    record_query("autocomplete", duration_ms=duration_ms)
    log_event("search_request", kind="autocomplete", term=term, result_count=len(names), duration_ms=duration_ms)
    return AutocompleteResponse(names=names)


@app.get("/search", response_model=SearchResponse)
def search(graph: GraphDep, term: Annotated[str, Query(max_length=200)] = "") -> SearchResponse:
    t0 = time.perf_counter()
    results = [
        LocationOut(id=loc.id, lon=loc.lon, lat=loc.lat, name=loc.name)
        for loc in graph.locations_named(term)
    ]
    duration_ms = round((time.perf_counter() - t0) * 1000, 2)
    record_query("search", duration_ms=duration_ms)
    log_event("search_request", kind="exact", term=term, result_count=len(results), duration_ms=duration_ms)
    return SearchResponse(results=results)


@app.get("/metrics")
async def metrics() -> dict[str, object]:
    return {"queries": metrics_snapshot(), "route_cache": route_cache_stats()}


@app.post("/cache/clear", response_model=CacheClearResponse)
async def clear_cache() -> CacheClearResponse:
    cleared = clear_route_cache()
    log_event("route_cache_cleared", cleared=cleared)
    return CacheClearResponse(cleared=cleared)


@app.get("/locations/{location_id}", response_model=LocationOut)
def get_location(location_id: int, graph: GraphDep) -> LocationOut:
    try:
        loc = graph.location(location_id)
    except UnknownLocation as e:
        _record_map_error("/locations", e, status_code=404)
        raise HTTPException(status_code=404, detail=_error_detail(e)) from e
    return LocationOut(id=loc.id, lon=loc.lon, lat=loc.lat, name=loc.name)
