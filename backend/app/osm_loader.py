from __future__ import annotations

import logging
import time
import xml.etree.ElementTree as ET
from functools import lru_cache
from pathlib import Path

from .graph_store import GraphStore
from .logging_utils import log_event
from .settings import settings

ALLOWED_HIGHWAYS = frozenset(
    {
        "motorway",
        "motorway_link",
        "trunk",
        "trunk_link",
        "primary",
        "primary_link",
        "secondary",
        "secondary_link",
        "tertiary",
        "tertiary_link",
        "unclassified",
        "residential",
        "living_street",
    }
)


def _parse_node(elem: ET.Element) -> tuple[int, float, float] | None:
    try:
        node_id = int(elem.attrib["id"])
        lat = float(elem.attrib["lat"])
        lon = float(elem.attrib["lon"])
    except (KeyError, ValueError):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return node_id, lon, lat


def _tags(elem: ET.Element) -> dict[str, str]:
    tags: dict[str, str] = {}
    for child in elem.iter("tag"):
        key = str(child.attrib.get("k", "")).strip()
        if key:
            tags[key] = str(child.attrib.get("v", "")).strip()
    return tags


def _way_refs(elem: ET.Element) -> list[int]:
    refs: list[int] = []
    for child in elem.iter("nd"):
        try:
            refs.append(int(child.attrib["ref"]))
        except (KeyError, ValueError):
            continue
    return refs


def load_osm_graph(path: Path | str, *, graph: GraphStore | None = None) -> GraphStore:
    """Stream an OSM XML extract into a graph and prune it.

    Every node becomes a vertex; named nodes also become locations. Ways with
    a routable ``highway`` tag join their nodes; refs to nodes missing from
    the extract are skipped. Structural errors (duplicate node ids) propagate.
    """
    t0 = time.perf_counter()
    graph = graph if graph is not None else GraphStore()
    nodes_seen = 0
    nodes_kept = 0
    locations_kept = 0
    ways_seen = 0
    ways_kept = 0

    for _event, elem in ET.iterparse(str(path), events=("end",)):
        if elem.tag == "node":
            nodes_seen += 1
            parsed = _parse_node(elem)
            if parsed is not None:
                node_id, lon, lat = parsed
                graph.add_vertex(node_id, lon, lat)
                nodes_kept += 1
                name = _tags(elem).get("name", "")
                if name:
                    graph.add_location(node_id, lon, lat, name)
                    locations_kept += 1
            elem.clear()
        elif elem.tag == "way":
            ways_seen += 1
            tags = _tags(elem)
            if tags.get("highway", "").lower() in ALLOWED_HIGHWAYS:
                refs = [ref for ref in _way_refs(elem) if ref in graph]
                if len(refs) >= 2:
                    graph.add_way(refs, tags.get("name", ""))
                    ways_kept += 1
            elem.clear()

    removed = graph.prune()
    log_event(
        "osm_graph_loaded",
        path=str(path),
        nodes_seen=nodes_seen,
        nodes_kept=nodes_kept,
        vertices_pruned=removed,
        vertex_count=graph.vertex_count,
        edge_count=graph.edge_count,
        ways_seen=ways_seen,
        ways_kept=ways_kept,
        location_count=locations_kept,
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return graph


@lru_cache(maxsize=1)
def load_configured_graph() -> GraphStore | None:
    raw = (settings.map_db_path or "").strip()
    if not raw:
        return None
    path = Path(raw)
    if not path.exists():
        log_event("osm_graph_missing", level=logging.WARNING, path=str(path))
        return None
    return load_osm_graph(path)
