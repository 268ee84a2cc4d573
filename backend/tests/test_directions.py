from __future__ import annotations

import pytest

from app.directions import (
    UNKNOWN_ROAD,
    NavigationInstruction,
    TurnCategory,
    classify_turn,
    directions_text,
    route_directions,
    way_name,
)
from app.graph_store import GraphStore
from app.map_errors import MalformedInstruction


def _town() -> GraphStore:
    """Main Street runs north from 1 to 2, Oak Avenue east then north 2-3-4, 4-5 is unnamed."""
    graph = GraphStore()
    graph.add_vertex(1, 0.000, 0.000)
    graph.add_vertex(2, 0.000, 0.001)
    graph.add_vertex(3, 0.001, 0.001)
    graph.add_vertex(4, 0.001, 0.002)
    graph.add_vertex(5, 0.000, 0.002)
    graph.add_way([1, 2], "Main Street")
    graph.add_way([2, 3, 4], "Oak Avenue")
    graph.add_way([4, 5], "")
    graph.prune()
    return graph


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (0.0, TurnCategory.STRAIGHT),
        (15.0, TurnCategory.STRAIGHT),
        (-15.0, TurnCategory.STRAIGHT),
        (15.5, TurnCategory.SLIGHT_RIGHT),
        (-20.0, TurnCategory.SLIGHT_LEFT),
        (30.0, TurnCategory.SLIGHT_RIGHT),
        (45.0, TurnCategory.RIGHT),
        (-100.0, TurnCategory.LEFT),
        (120.0, TurnCategory.SHARP_RIGHT),
        (-170.0, TurnCategory.SHARP_LEFT),
        (350.0, TurnCategory.STRAIGHT),
        (200.0, TurnCategory.SHARP_LEFT),
        (-270.0, TurnCategory.RIGHT),
    ],
)
def test_classify_turn(delta: float, expected: TurnCategory) -> None:
    assert classify_turn(delta) is expected


def test_turn_category_labels() -> None:
    assert TurnCategory.START.label == "Start"
    assert TurnCategory.STRAIGHT.label == "Go straight"
    assert TurnCategory.SHARP_LEFT.label == "Sharp left"
    assert len(TurnCategory) == 8


def test_render_and_parse() -> None:
    instruction = NavigationInstruction(TurnCategory.LEFT, "Main Street", 1.23456)
    text = instruction.render()

    assert text == "Turn left on Main Street and continue for 1.235 miles."
    assert str(instruction) == text

    parsed = NavigationInstruction.parse(text)
    assert parsed == instruction
    assert parsed.category is TurnCategory.LEFT
    assert parsed.way == "Main Street"
    assert parsed.distance == pytest.approx(1.235)


@pytest.mark.parametrize("category", list(TurnCategory))
def test_parse_inverts_render_for_every_category(category: TurnCategory) -> None:
    instruction = NavigationInstruction(category, "Shattuck Avenue", 0.4567)
    parsed = NavigationInstruction.parse(instruction.render())
    assert parsed == instruction
    assert parsed.category is category


def test_parse_keeps_road_names_containing_on() -> None:
    parsed = NavigationInstruction.parse("Slight right on Avenue on the Park and continue for 0.500 miles.")
    assert parsed.category is TurnCategory.SLIGHT_RIGHT
    assert parsed.way == "Avenue on the Park"
    assert parsed.distance == pytest.approx(0.5)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "Turn left onto Main Street",
        "Fly on Main Street and continue for 1.000 miles.",
        "Turn left on Main Street and continue for -1.000 miles.",
        "Turn left on Main Street and continue for many miles.",
    ],
)
def test_parse_rejects_malformed_text(text: str) -> None:
    with pytest.raises(MalformedInstruction) as excinfo:
        NavigationInstruction.parse(text)
    assert excinfo.value.reason_code == "malformed_instruction"


def test_equality_uses_rendered_precision() -> None:
    a = NavigationInstruction(TurnCategory.RIGHT, "Oak Avenue", 0.1234)
    b = NavigationInstruction(TurnCategory.RIGHT, "Oak Avenue", 0.1231)
    c = NavigationInstruction(TurnCategory.RIGHT, "Oak Avenue", 0.1236)
    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert a != NavigationInstruction(TurnCategory.LEFT, "Oak Avenue", 0.1234)
    assert a != "Turn right on Oak Avenue and continue for 0.123 miles."


def test_way_name_uses_shared_names() -> None:
    graph = _town()
    assert way_name(graph, 1, 2) == "Main Street"
    assert way_name(graph, 2, 3) == "Oak Avenue"
    assert way_name(graph, 4, 5) == UNKNOWN_ROAD


def test_route_directions_split_on_road_changes_only() -> None:
    graph = _town()
    route = [1, 2, 3, 4, 5]

    instructions = route_directions(graph, route)

    assert [(i.category, i.way) for i in instructions] == [
        (TurnCategory.START, "Main Street"),
        (TurnCategory.STRAIGHT, "Main Street"),
        (TurnCategory.RIGHT, "Oak Avenue"),
        (TurnCategory.LEFT, UNKNOWN_ROAD),
    ]
    assert instructions[1].distance == pytest.approx(graph.distance(1, 2))
    # the left bend from 3 to 4 stays on Oak Avenue
    assert instructions[2].distance == pytest.approx(graph.distance(2, 3) + graph.distance(3, 4))
    assert instructions[3].distance == pytest.approx(graph.distance(4, 5))
    total = sum(i.distance for i in instructions)
    assert total == pytest.approx(sum(graph.distance(a, b) for a, b in zip(route, route[1:])))


def test_start_marker_covers_no_distance() -> None:
    graph = _town()
    instructions = route_directions(graph, [1, 2, 3])
    assert instructions[0] == NavigationInstruction(TurnCategory.START, "Main Street", 0.0)
    assert instructions[0].distance == 0.0
    assert instructions[1].category is TurnCategory.STRAIGHT
    assert instructions[1].distance == pytest.approx(graph.distance(1, 2))


def test_route_directions_single_road() -> None:
    graph = _town()
    instructions = route_directions(graph, [2, 3, 4])
    assert [(i.category, i.way) for i in instructions] == [
        (TurnCategory.START, "Oak Avenue"),
        (TurnCategory.STRAIGHT, "Oak Avenue"),
    ]
    assert instructions[0].distance == 0.0
    assert instructions[1].distance == pytest.approx(graph.distance(2, 3) + graph.distance(3, 4))


def test_short_routes_have_no_directions() -> None:
    graph = _town()
    assert route_directions(graph, []) == []
    assert route_directions(graph, [1]) == []


def test_directions_text_joins_rendered_lines() -> None:
    graph = _town()
    text = directions_text(route_directions(graph, [1, 2, 3]))
    lines = text.splitlines()
    assert len(lines) == 3
    assert lines[0] == "Start on Main Street and continue for 0.000 miles."
    assert lines[1].startswith("Go straight on Main Street and continue for ")
    assert lines[2].startswith("Turn right on Oak Avenue and continue for ")
    assert [NavigationInstruction.parse(line).way for line in lines] == ["Main Street", "Main Street", "Oak Avenue"]
