from __future__ import annotations

from pydantic import BaseModel, Field

from .directions import TurnCategory


class LonLat(BaseModel):
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)


class RasterResponse(BaseModel):
    render_grid: list[list[str]]
    raster_ul_lon: float
    raster_ul_lat: float
    raster_lr_lon: float
    raster_lr_lat: float
    depth: int = Field(..., ge=0)
    query_success: bool
    failure_reason: str = ""


class RouteRequest(BaseModel):
    start: LonLat
    end: LonLat


class InstructionOut(BaseModel):
    category: TurnCategory
    label: str
    way: str
    distance_miles: float
    text: str


class RouteResponse(BaseModel):
    found: bool
    nodes: list[int]
    distance_miles: float
    start_vertex: int | None = None
    goal_vertex: int | None = None
    explored_states: int = 0
    no_path_reason: str = ""
    directions: list[InstructionOut] = Field(default_factory=list)
    directions_text: str = ""


class AutocompleteResponse(BaseModel):
    names: list[str]


class LocationOut(BaseModel):
    id: int
    lon: float
    lat: float
    name: str


class SearchResponse(BaseModel):
    results: list[LocationOut]


class CacheClearResponse(BaseModel):
    cleared: int
