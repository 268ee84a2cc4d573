from __future__ import annotations

import json
from pathlib import Path

import pytest

import app.osm_loader as osm_loader
from app.map_errors import DuplicateVertex
from app.osm_loader import load_osm_graph
from scripts.plan_route import build_parser, main, route_report

_EXTRACT = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6">
  <node id="1" lat="37.8600" lon="-122.2600"/>
  <node id="2" lat="37.8610" lon="-122.2600"/>
  <node id="3" lat="37.8620" lon="-122.2600">
    <tag k="name" v="Corner Books"/>
  </node>
  <node id="4" lat="37.8620" lon="-122.2590"/>
  <node id="5" lat="37.8620" lon="-122.2610"/>
  <node id="6" lat="37.8700" lon="-122.2500">
    <tag k="name" v="Golden Bear Cafe"/>
  </node>
  <node id="7" lat="abc" lon="-122.2500"/>
  <way id="100">
    <nd ref="1"/>
    <nd ref="2"/>
    <nd ref="3"/>
    <tag k="highway" v="residential"/>
    <tag k="name" v="Main Street"/>
  </way>
  <way id="101">
    <nd ref="3"/>
    <nd ref="4"/>
    <tag k="highway" v="footway"/>
    <tag k="name" v="Garden Path"/>
  </way>
  <way id="102">
    <nd ref="3"/>
    <nd ref="5"/>
    <nd ref="999"/>
    <tag k="highway" v="Primary"/>
  </way>
</osm>
"""


def _write_extract(tmp_path: Path, text: str = _EXTRACT) -> Path:
    path = tmp_path / "berkeley.osm"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_osm_graph_builds_pruned_graph(tmp_path: Path) -> None:
    graph = load_osm_graph(_write_extract(tmp_path))

    assert graph.frozen
    # 4 only sits on a footway, 6 on no way at all
    assert set(graph.vertices()) == {1, 2, 3, 5}
    assert graph.neighbors(2) == (1, 3)
    assert set(graph.neighbors(3)) == {2, 5}
    assert graph.names_at(1) == frozenset({"Main Street"})
    assert graph.names_at(5) == frozenset()
    assert graph.lat(2) == pytest.approx(37.8610)


def test_load_osm_graph_indexes_named_nodes(tmp_path: Path) -> None:
    graph = load_osm_graph(_write_extract(tmp_path))

    assert graph.location_count == 2
    assert graph.locations_by_prefix("gold") == ["Golden Bear Cafe"]
    assert graph.location_ids("corner books") == [3]
    assert graph.location(6).lon == pytest.approx(-122.2500)


def test_duplicate_node_ids_propagate(tmp_path: Path) -> None:
    text = _EXTRACT.replace('<node id="5"', '<node id="1"')
    with pytest.raises(DuplicateVertex):
        load_osm_graph(_write_extract(tmp_path, text))


def test_load_configured_graph_without_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(osm_loader.settings, "map_db_path", "")
    osm_loader.load_configured_graph.cache_clear()
    try:
        assert osm_loader.load_configured_graph() is None
    finally:
        osm_loader.load_configured_graph.cache_clear()


def test_load_configured_graph_missing_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(osm_loader.settings, "map_db_path", str(tmp_path / "missing.osm"))
    osm_loader.load_configured_graph.cache_clear()
    try:
        assert osm_loader.load_configured_graph() is None
    finally:
        osm_loader.load_configured_graph.cache_clear()


def test_load_configured_graph_reads_extract(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(osm_loader.settings, "map_db_path", str(_write_extract(tmp_path)))
    osm_loader.load_configured_graph.cache_clear()
    try:
        graph = osm_loader.load_configured_graph()
        assert graph is not None
        assert graph.vertex_count == 4
        assert osm_loader.load_configured_graph() is graph
    finally:
        osm_loader.load_configured_graph.cache_clear()


def test_plan_route_script_report(tmp_path: Path) -> None:
    graph = load_osm_graph(_write_extract(tmp_path))
    report = route_report(
        graph,
        start_lon=-122.2600,
        start_lat=37.8600,
        end_lon=-122.2610,
        end_lat=37.8620,
    )

    assert report["found"] is True
    assert report["nodes"] == [1, 2, 3, 5]
    assert report["directions"][0] == "Start on Main Street and continue for 0.000 miles."
    assert report["directions"][1].startswith("Go straight on Main Street")
    assert report["directions"][2].startswith("Turn left on unknown road")


def test_plan_route_script_main_prints_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_extract(tmp_path)
    args = build_parser().parse_args(
        [
            "--osm",
            str(path),
            "--start-lon",
            "-122.2600",
            "--start-lat",
            "37.8600",
            "--end-lon",
            "-122.2610",
            "--end-lat",
            "37.8620",
        ]
    )
    assert args.timeout_s == 0.0

    exit_code = main(
        [
            "--osm",
            str(path),
            "--start-lon",
            "-122.2600",
            "--start-lat",
            "37.8600",
            "--end-lon",
            "-122.2610",
            "--end-lat",
            "37.8620",
        ]
    )

    assert exit_code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["nodes"] == [1, 2, 3, 5]
    assert out["distance_miles"] > 0.0
