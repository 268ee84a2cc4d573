from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "unknown_vertex",
        "unknown_location",
        "duplicate_vertex",
        "graph_frozen",
        "graph_empty",
        "no_path",
        "route_search_timeout",
        "invalid_query_box",
        "invalid_viewport",
        "query_box_outside_root",
        "malformed_instruction",
        "map_data_invalid",
    }
)


@dataclass
class MapDataError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class UnknownVertex(MapDataError, KeyError):
    def __init__(self, vertex_id: object) -> None:
        super().__init__(
            reason_code="unknown_vertex",
            message=f"vertex {vertex_id!r} not found",
            details={"vertex_id": vertex_id},
        )


class UnknownLocation(MapDataError, KeyError):
    def __init__(self, location_id: object) -> None:
        super().__init__(
            reason_code="unknown_location",
            message=f"location {location_id!r} not found",
            details={"location_id": location_id},
        )


class DuplicateVertex(MapDataError):
    def __init__(self, vertex_id: object) -> None:
        super().__init__(
            reason_code="duplicate_vertex",
            message=f"vertex {vertex_id!r} already registered",
            details={"vertex_id": vertex_id},
        )


class GraphFrozen(MapDataError):
    def __init__(self, operation: str) -> None:
        super().__init__(
            reason_code="graph_frozen",
            message=f"graph is frozen after prune(); {operation} is not allowed",
            details={"operation": operation},
        )


class NoPathFound(MapDataError):
    pass


class InvalidQueryBox(MapDataError):
    pass


class MalformedInstruction(MapDataError):
    def __init__(self, text: str, *, why: str = "malformed navigation instruction") -> None:
        super().__init__(
            reason_code="malformed_instruction",
            message=f"{why}: {text!r}",
            details={"text": text},
        )


def normalize_reason_code(reason_code: str, *, default: str = "map_data_invalid") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
