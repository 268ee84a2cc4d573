from __future__ import annotations

import math
from dataclasses import dataclass

from .map_errors import InvalidQueryBox
from .settings import settings


@dataclass(frozen=True)
class BoundingBox:
    ullon: float
    ullat: float
    lrlon: float
    lrlat: float

    @property
    def width(self) -> float:
        return self.lrlon - self.ullon

    @property
    def height(self) -> float:
        return self.ullat - self.lrlat

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.ullon, self.ullat, self.lrlon, self.lrlat))

    def is_degenerate(self) -> bool:
        return not (self.ullon < self.lrlon and self.lrlat < self.ullat)

    def intersects(self, other: BoundingBox) -> bool:
        return (
            self.ullon < other.lrlon
            and other.ullon < self.lrlon
            and self.lrlat < other.ullat
            and other.lrlat < self.ullat
        )


@dataclass(frozen=True)
class TileDescriptor:
    depth: int
    x: int
    y: int

    @property
    def filename(self) -> str:
        return f"d{self.depth}_x{self.x}_y{self.y}.png"


@dataclass(frozen=True)
class TilePyramid:
    root: BoundingBox
    tile_size: int = 256
    max_depth: int = 7

    @classmethod
    def from_settings(cls) -> TilePyramid:
        return cls(
            root=BoundingBox(
                ullon=settings.root_ullon,
                ullat=settings.root_ullat,
                lrlon=settings.root_lrlon,
                lrlat=settings.root_lrlat,
            ),
            tile_size=settings.tile_size,
            max_depth=settings.max_tile_depth,
        )

    def tile_lon_dpp(self, depth: int) -> float:
        return self.root.width / (2**depth) / self.tile_size

    def depth_for(self, requested_lon_dpp: float) -> int:
        """Shallowest depth whose tiles are at least as fine as requested, capped at max_depth."""
        depth = 0
        while depth < self.max_depth and self.tile_lon_dpp(depth) > requested_lon_dpp:
            depth += 1
        return depth


@dataclass(frozen=True)
class RasterResult:
    grid: tuple[tuple[TileDescriptor, ...], ...]
    bounds: BoundingBox
    depth: int
    x_range: tuple[int, int]
    y_range: tuple[int, int]
    query_success: bool
    failure_reason: str = ""

    @property
    def render_grid(self) -> list[list[str]]:
        return [[tile.filename for tile in row] for row in self.grid]


def check_viewport(width_px: float, height_px: float) -> None:
    if not (
        math.isfinite(width_px)
        and math.isfinite(height_px)
        and width_px > 0
        and height_px > 0
    ):
        raise InvalidQueryBox(
            reason_code="invalid_viewport",
            message=f"viewport must be positive and finite, got {width_px!r}x{height_px!r}",
            details={"width_px": width_px, "height_px": height_px},
        )


def check_query_box(query: BoundingBox, root: BoundingBox) -> None:
    if not query.is_finite() or query.is_degenerate():
        raise InvalidQueryBox(
            reason_code="invalid_query_box",
            message="query box must be finite with ullon < lrlon and lrlat < ullat",
            details={"query": [query.ullon, query.ullat, query.lrlon, query.lrlat]},
        )
    if not query.intersects(root):
        raise InvalidQueryBox(
            reason_code="query_box_outside_root",
            message="query box does not overlap the tile root",
            details={"query": [query.ullon, query.ullat, query.lrlon, query.lrlat]},
        )


def _index_range(
    *,
    origin: float,
    step: float,
    near: float,
    far: float,
    count: int,
    sign: float,
) -> tuple[int, int]:
    # sign is +1 walking east from the west edge, -1 walking south from the north edge
    start = 0
    while start < count - 1 and sign * (origin + sign * (start + 1) * step) <= sign * near:
        start += 1
    end = start
    while end < count - 1 and sign * (origin + sign * (end + 1) * step) < sign * far:
        end += 1
    return start, end


def select_tiles(
    query: BoundingBox,
    width_px: float,
    height_px: float,
    *,
    pyramid: TilePyramid | None = None,
) -> RasterResult:
    """Pick the tile grid covering ``query`` at the best-fitting depth.

    Invalid input never raises. A non-positive viewport is rejected before any
    arithmetic. A degenerate box or one missing the root box still gets a
    best-effort grid, flagged with ``query_success=False``.
    """
    pyramid = pyramid or TilePyramid.from_settings()
    root = pyramid.root

    try:
        check_viewport(width_px, height_px)
    except InvalidQueryBox as exc:
        return RasterResult(
            grid=(),
            bounds=query,
            depth=0,
            x_range=(0, -1),
            y_range=(0, -1),
            query_success=False,
            failure_reason=exc.reason_code,
        )

    requested_lon_dpp = query.width / width_px
    depth = pyramid.depth_for(requested_lon_dpp)
    count = 2**depth
    step_lon = root.width / count
    step_lat = root.height / count

    x_start, x_end = _index_range(
        origin=root.ullon,
        step=step_lon,
        near=query.ullon,
        far=query.lrlon,
        count=count,
        sign=1.0,
    )
    y_start, y_end = _index_range(
        origin=root.ullat,
        step=step_lat,
        near=query.ullat,
        far=query.lrlat,
        count=count,
        sign=-1.0,
    )

    grid = tuple(
        tuple(TileDescriptor(depth=depth, x=x, y=y) for x in range(x_start, x_end + 1))
        for y in range(y_start, y_end + 1)
    )
    bounds = BoundingBox(
        ullon=root.ullon + x_start * step_lon,
        ullat=root.ullat - y_start * step_lat,
        lrlon=root.ullon + (x_end + 1) * step_lon,
        lrlat=root.ullat - (y_end + 1) * step_lat,
    )

    failure_reason = ""
    try:
        check_query_box(query, root)
    except InvalidQueryBox as exc:
        failure_reason = exc.reason_code

    return RasterResult(
        grid=grid,
        bounds=bounds,
        depth=depth,
        x_range=(x_start, x_end),
        y_range=(y_start, y_end),
        query_success=not failure_reason,
        failure_reason=failure_reason,
    )
