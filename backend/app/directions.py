from __future__ import annotations

import re
from collections.abc import Sequence
from enum import Enum

from .geometry import normalize_angle
from .graph_store import GraphStore
from .map_errors import MalformedInstruction

UNKNOWN_ROAD = "unknown road"

STRAIGHT_MAX_DEG = 15.0
SLIGHT_MAX_DEG = 30.0
TURN_MAX_DEG = 100.0


class TurnCategory(str, Enum):
    START = "Start"
    STRAIGHT = "Go straight"
    SLIGHT_LEFT = "Slight left"
    SLIGHT_RIGHT = "Slight right"
    LEFT = "Turn left"
    RIGHT = "Turn right"
    SHARP_LEFT = "Sharp left"
    SHARP_RIGHT = "Sharp right"

    @property
    def label(self) -> str:
        return self.value


_INSTRUCTION_RE = re.compile(
    r"(?P<label>[A-Za-z ]+?) on (?P<way>.*) and continue for (?P<distance>\d+(?:\.\d+)?) miles\."
)


class NavigationInstruction:
    """One leg of turn-by-turn directions.

    Two instructions are equal when they render identically, i.e. the
    distance is compared at the three decimal places the text form carries.
    """

    __slots__ = ("category", "way", "distance")

    def __init__(self, category: TurnCategory, way: str, distance: float) -> None:
        self.category = category
        self.way = way
        self.distance = float(distance)

    def _key(self) -> tuple[TurnCategory, str, str]:
        return (self.category, self.way, f"{self.distance:.3f}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NavigationInstruction):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return (
            f"NavigationInstruction(category={self.category.name}, "
            f"way={self.way!r}, distance={self.distance!r})"
        )

    def render(self) -> str:
        return f"{self.category.label} on {self.way} and continue for {self.distance:.3f} miles."

    __str__ = render

    @classmethod
    def parse(cls, text: str) -> NavigationInstruction:
        match = _INSTRUCTION_RE.fullmatch(str(text).strip())
        if match is None:
            raise MalformedInstruction(text)
        try:
            category = TurnCategory(match.group("label"))
        except ValueError as exc:
            raise MalformedInstruction(text, why="unknown turn label") from exc
        try:
            distance = float(match.group("distance"))
        except ValueError as exc:  # pragma: no cover - regex only admits decimals
            raise MalformedInstruction(text, why="bad distance") from exc
        return cls(category, match.group("way"), distance)


def classify_turn(delta_deg: float) -> TurnCategory:
    """Bucket a signed bearing change; negative is a left turn."""
    delta = normalize_angle(delta_deg)
    magnitude = abs(delta)
    left = delta < 0
    if magnitude <= STRAIGHT_MAX_DEG:
        return TurnCategory.STRAIGHT
    if magnitude <= SLIGHT_MAX_DEG:
        return TurnCategory.SLIGHT_LEFT if left else TurnCategory.SLIGHT_RIGHT
    if magnitude <= TURN_MAX_DEG:
        return TurnCategory.LEFT if left else TurnCategory.RIGHT
    return TurnCategory.SHARP_LEFT if left else TurnCategory.SHARP_RIGHT


def way_name(graph: GraphStore, a: int, b: int) -> str:
    shared = graph.names_at(a) & graph.names_at(b)
    if not shared:
        return UNKNOWN_ROAD
    return min(shared)


def route_directions(graph: GraphStore, route: Sequence[int]) -> list[NavigationInstruction]:
    """Turn a vertex route into instructions.

    The first instruction is a START marker on the first road covering 0
    miles; the first road's length then follows as a STRAIGHT leg. A new
    instruction begins only where the road name changes; its category is
    the turn taken onto the new road. Routes shorter than two vertices
    produce no instructions.
    """
    if len(route) < 2:
        return []
    current_way = way_name(graph, route[0], route[1])
    out = [NavigationInstruction(TurnCategory.START, current_way, 0.0)]
    current_category = TurnCategory.STRAIGHT
    current_distance = 0.0
    prev_bearing = graph.bearing(route[0], route[1])
    for idx in range(1, len(route)):
        a = route[idx - 1]
        b = route[idx]
        way = way_name(graph, a, b)
        edge_bearing = graph.bearing(a, b)
        if way != current_way:
            out.append(NavigationInstruction(current_category, current_way, current_distance))
            current_category = classify_turn(edge_bearing - prev_bearing)
            current_way = way
            current_distance = 0.0
        current_distance += graph.distance(a, b)
        prev_bearing = edge_bearing
    out.append(NavigationInstruction(current_category, current_way, current_distance))
    return out


def directions_text(instructions: Sequence[NavigationInstruction]) -> str:
    return "\n".join(instruction.render() for instruction in instructions)
