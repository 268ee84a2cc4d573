from __future__ import annotations

import heapq
import time
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import count
from math import inf

from .geometry import distance
from .graph_store import GraphStore
from .logging_utils import log_event
from .map_errors import NoPathFound, normalize_reason_code
from .settings import settings


@dataclass(frozen=True)
class PathResult:
    nodes: tuple[int, ...]
    cost: float


@dataclass(frozen=True)
class RoutePlan:
    start_vertex: int | None
    goal_vertex: int | None
    nodes: tuple[int, ...]
    distance_miles: float
    explored_states: int
    no_path_reason: str = ""

    @property
    def found(self) -> bool:
        return bool(self.nodes)


def _reconstruct(predecessor: dict[int, int | None], goal: int) -> tuple[int, ...]:
    path: list[int] = []
    node: int | None = goal
    while node is not None:
        path.append(node)
        node = predecessor[node]
    path.reverse()
    return tuple(path)


def shortest_path(
    graph: GraphStore,
    *,
    start: int,
    goal: int,
    explored_counter: list[int] | None = None,
    deadline_monotonic_s: float | None = None,
) -> PathResult:
    """A* between two vertex ids with a great-circle heuristic.

    Great-circle distance never exceeds the along-graph distance, so the
    first time the goal is popped its cost is optimal. Equal priorities pop
    in push order. Absent ids raise ``UnknownVertex``.
    """
    goal_lon = graph.lon(goal)
    goal_lat = graph.lat(goal)

    def h(vertex: int) -> float:
        return distance(graph.lon(vertex), graph.lat(vertex), goal_lon, goal_lat)

    seq = count()
    best_g: dict[int, float] = {start: 0.0}
    # start maps to None: "no predecessor" is never a vertex id
    predecessor: dict[int, int | None] = {start: None}
    visited: set[int] = set()
    heap: list[tuple[float, int, int]] = [(h(start), next(seq), start)]
    while heap:
        if deadline_monotonic_s is not None and time.monotonic() >= float(deadline_monotonic_s):
            raise NoPathFound(
                reason_code="route_search_timeout",
                message="search deadline exceeded",
                details={"start": start, "goal": goal},
            )
        _priority, _, node = heapq.heappop(heap)
        if node in visited:
            continue
        if explored_counter is not None:
            explored_counter[0] += 1
        if node == goal:
            return PathResult(nodes=_reconstruct(predecessor, goal), cost=best_g[goal])
        visited.add(node)
        g_node = best_g[node]
        for nxt in graph.neighbors(node):
            if nxt in visited:
                continue
            candidate = g_node + graph.distance(node, nxt)
            if candidate < best_g.get(nxt, inf):
                best_g[nxt] = candidate
                predecessor[nxt] = node
                heapq.heappush(heap, (candidate + h(nxt), next(seq), nxt))
    raise NoPathFound(
        reason_code="no_path",
        message="no path",
        details={"start": start, "goal": goal},
    )


def route_distance(graph: GraphStore, route: Sequence[int]) -> float:
    return sum(graph.distance(route[idx - 1], route[idx]) for idx in range(1, len(route)))


def plan_route(
    graph: GraphStore,
    *,
    start_lon: float,
    start_lat: float,
    goal_lon: float,
    goal_lat: float,
    timeout_s: float | None = None,
) -> RoutePlan:
    """Snap both coordinates to the graph and search between them.

    Never raises for an unreachable goal: the plan comes back with no nodes
    and a ``no_path_reason``.
    """
    t0 = time.perf_counter()
    start = graph.nearest_vertex(start_lon, start_lat)
    goal = graph.nearest_vertex(goal_lon, goal_lat)
    if start is None or goal is None:
        log_event("route_search", found=False, no_path_reason="graph_empty", explored_states=0)
        return RoutePlan(
            start_vertex=None,
            goal_vertex=None,
            nodes=(),
            distance_miles=0.0,
            explored_states=0,
            no_path_reason="graph_empty",
        )

    limit_s = settings.route_search_timeout_s if timeout_s is None else timeout_s
    deadline = time.monotonic() + float(limit_s) if limit_s and limit_s > 0 else None
    explored_counter = [0]
    try:
        result = shortest_path(
            graph,
            start=start,
            goal=goal,
            explored_counter=explored_counter,
            deadline_monotonic_s=deadline,
        )
    except NoPathFound as exc:
        log_event(
            "route_search",
            start_vertex=start,
            goal_vertex=goal,
            found=False,
            no_path_reason=normalize_reason_code(exc.reason_code),
            explored_states=int(explored_counter[0]),
            duration_ms=round((time.perf_counter() - t0) * 1000, 2),
        )
        return RoutePlan(
            start_vertex=start,
            goal_vertex=goal,
            nodes=(),
            distance_miles=0.0,
            explored_states=int(explored_counter[0]),
            no_path_reason=normalize_reason_code(exc.reason_code),
        )

    log_event(
        "route_search",
        start_vertex=start,
        goal_vertex=goal,
        found=True,
        node_count=len(result.nodes),
        distance_miles=round(result.cost, 6),
        explored_states=int(explored_counter[0]),
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return RoutePlan(
        start_vertex=start,
        goal_vertex=goal,
        nodes=result.nodes,
        distance_miles=result.cost,
        explored_states=int(explored_counter[0]),
    )
