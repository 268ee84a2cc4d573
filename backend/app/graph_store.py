from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from .geometry import bearing, distance
from .logging_utils import log_event
from .map_errors import DuplicateVertex, GraphFrozen, UnknownLocation, UnknownVertex
from .prefix_index import PrefixIndex

_NAME_STRIP_RE = re.compile(r"[^a-zA-Z ]")


def normalize_name(name: str) -> str:
    """Drop everything but ASCII letters and spaces, then lower-case."""
    return _NAME_STRIP_RE.sub("", str(name or "")).lower()


@dataclass(frozen=True)
class Location:
    id: int
    lon: float
    lat: float
    name: str


@dataclass
class _BuildVertex:
    lon: float
    lat: float
    # dict keys as an insertion-ordered set
    neighbors: dict[int, None] = field(default_factory=dict)
    names: set[str] = field(default_factory=set)


class GraphStore:
    """Road graph plus named locations.

    The store has two phases. While building, vertices live in a mutable
    dict and ``add_*`` calls are accepted. ``prune()`` drops isolated
    vertices, compacts the survivors into an arena of parallel tuples
    (adjacency stored as arena indices) and freezes the store; from then on
    every query is read-only and any ``add_*`` raises ``GraphFrozen``.
    """

    def __init__(self) -> None:
        # distinguishes graphs in per-graph caches
        self.graph_id = uuid.uuid4().hex
        self._building: dict[int, _BuildVertex] | None = {}

        self._ids: tuple[int, ...] = ()
        self._slot_by_id: dict[int, int] = {}
        self._lons: tuple[float, ...] = ()
        self._lats: tuple[float, ...] = ()
        self._adjacency: tuple[tuple[int, ...], ...] = ()
        self._names: tuple[frozenset[str], ...] = ()

        self._locations: dict[int, Location] = {}
        self._name_to_ids: dict[str, list[int]] = {}
        self._prefix_index = PrefixIndex()

    # -- build phase -------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._building is None

    def _build_table(self, operation: str) -> dict[int, _BuildVertex]:
        if self._building is None:
            raise GraphFrozen(operation)
        return self._building

    def add_vertex(self, vertex_id: int, lon: float, lat: float) -> None:
        table = self._build_table("add_vertex")
        if vertex_id in table:
            raise DuplicateVertex(vertex_id)
        table[vertex_id] = _BuildVertex(lon=float(lon), lat=float(lat))

    def add_edge(self, a: int, b: int) -> None:
        table = self._build_table("add_edge")
        va = table.get(a)
        if va is None:
            raise UnknownVertex(a)
        vb = table.get(b)
        if vb is None:
            raise UnknownVertex(b)
        if a == b:
            return
        va.neighbors[b] = None
        vb.neighbors[a] = None

    def add_way(self, vertex_ids: Sequence[int], name: str) -> None:
        table = self._build_table("add_way")
        for vid in vertex_ids:
            if vid not in table:
                raise UnknownVertex(vid)
        for idx in range(1, len(vertex_ids)):
            self.add_edge(vertex_ids[idx - 1], vertex_ids[idx])
        if name:
            for vid in vertex_ids:
                table[vid].names.add(name)

    def add_location(self, location_id: int, lon: float, lat: float, name: str) -> None:
        self._build_table("add_location")
        self._locations[location_id] = Location(
            id=location_id,
            lon=float(lon),
            lat=float(lat),
            name=str(name),
        )
        key = normalize_name(name)
        self._name_to_ids.setdefault(key, []).append(location_id)
        self._prefix_index.add(key)

    def prune(self) -> int:
        """Remove vertices without neighbors and freeze. Returns the number removed."""
        if self._building is None:
            log_event("graph_pruned", vertices_removed=0, vertices_kept=len(self._ids), already_frozen=True)
            return 0
        table = self._building
        survivors = [vid for vid, vertex in table.items() if vertex.neighbors]
        slot_by_id = {vid: slot for slot, vid in enumerate(survivors)}
        self._ids = tuple(survivors)
        self._slot_by_id = slot_by_id
        self._lons = tuple(table[vid].lon for vid in survivors)
        self._lats = tuple(table[vid].lat for vid in survivors)
        # symmetric adjacency means every neighbor of a survivor survives too
        self._adjacency = tuple(
            tuple(slot_by_id[nbr] for nbr in table[vid].neighbors)
            for vid in survivors
        )
        self._names = tuple(frozenset(table[vid].names) for vid in survivors)
        removed = len(table) - len(survivors)
        self._building = None
        log_event(
            "graph_pruned",
            vertices_removed=removed,
            vertices_kept=len(survivors),
            edge_count=self.edge_count,
            location_count=len(self._locations),
            already_frozen=False,
        )
        return removed

    # -- vertex queries ----------------------------------------------------

    def _slot(self, vertex_id: int) -> int:
        slot = self._slot_by_id.get(vertex_id)
        if slot is None:
            raise UnknownVertex(vertex_id)
        return slot

    @staticmethod
    def _build_vertex(table: dict[int, _BuildVertex], vertex_id: int) -> _BuildVertex:
        vertex = table.get(vertex_id)
        if vertex is None:
            raise UnknownVertex(vertex_id)
        return vertex

    def __contains__(self, vertex_id: object) -> bool:
        if self._building is not None:
            return vertex_id in self._building
        return vertex_id in self._slot_by_id

    def __len__(self) -> int:
        return self.vertex_count

    @property
    def vertex_count(self) -> int:
        if self._building is not None:
            return len(self._building)
        return len(self._ids)

    @property
    def edge_count(self) -> int:
        if self._building is not None:
            return sum(len(v.neighbors) for v in self._building.values()) // 2
        return sum(len(adj) for adj in self._adjacency) // 2

    def vertices(self) -> Iterator[int]:
        if self._building is not None:
            return iter(tuple(self._building))
        return iter(self._ids)

    def neighbors(self, vertex_id: int) -> tuple[int, ...]:
        if self._building is not None:
            return tuple(self._build_vertex(self._building, vertex_id).neighbors)
        ids = self._ids
        return tuple(ids[slot] for slot in self._adjacency[self._slot(vertex_id)])

    def lon(self, vertex_id: int) -> float:
        if self._building is not None:
            return self._build_vertex(self._building, vertex_id).lon
        return self._lons[self._slot(vertex_id)]

    def lat(self, vertex_id: int) -> float:
        if self._building is not None:
            return self._build_vertex(self._building, vertex_id).lat
        return self._lats[self._slot(vertex_id)]

    def names_at(self, vertex_id: int) -> frozenset[str]:
        if self._building is not None:
            return frozenset(self._build_vertex(self._building, vertex_id).names)
        return self._names[self._slot(vertex_id)]

    def distance(self, a: int, b: int) -> float:
        return distance(self.lon(a), self.lat(a), self.lon(b), self.lat(b))

    def bearing(self, a: int, b: int) -> float:
        return bearing(self.lon(a), self.lat(a), self.lon(b), self.lat(b))

    def nearest_vertex(self, lon: float, lat: float) -> int | None:
        """Closest vertex by great-circle distance, or None for an empty graph.

        Linear scan over every vertex; a grid or k-d index could replace it
        without changing the result.
        """
        best_id: int | None = None
        best_d = float("inf")
        if self._building is not None:
            candidates: Iterable[tuple[int, float, float]] = (
                (vid, v.lon, v.lat) for vid, v in self._building.items()
            )
        else:
            candidates = zip(self._ids, self._lons, self._lats)
        for vid, v_lon, v_lat in candidates:
            d = distance(v_lon, v_lat, lon, lat)
            if d < best_d:
                best_d = d
                best_id = vid
        return best_id

    # -- location queries --------------------------------------------------

    @property
    def location_count(self) -> int:
        return len(self._locations)

    def location(self, location_id: int) -> Location:
        loc = self._locations.get(location_id)
        if loc is None:
            raise UnknownLocation(location_id)
        return loc

    def locations_by_prefix(self, prefix: str) -> list[str]:
        names: list[str] = []
        seen: set[str] = set()
        for key in self._prefix_index.keys_with_prefix(normalize_name(prefix)):
            first_id = self._name_to_ids[key][0]
            full_name = self.location(first_id).name
            if full_name in seen:
                continue
            seen.add(full_name)
            names.append(full_name)
        return names

    def location_ids(self, name: str) -> list[int]:
        return list(self._name_to_ids.get(normalize_name(name), ()))

    def locations_named(self, name: str) -> list[Location]:
        return [self.location(loc_id) for loc_id in self.location_ids(name)]
