from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Sequence

from app.directions import route_directions
from app.graph_store import GraphStore
from app.osm_loader import load_osm_graph
from app.route_planner import plan_route


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Plan a route on an OSM XML extract and print turn-by-turn directions."
    )
    parser.add_argument("--osm", type=Path, required=True, help="Path to the OSM XML extract.")
    parser.add_argument("--start-lon", type=float, required=True)
    parser.add_argument("--start-lat", type=float, required=True)
    parser.add_argument("--end-lon", type=float, required=True)
    parser.add_argument("--end-lat", type=float, required=True)
    parser.add_argument(
        "--timeout-s",
        type=float,
        default=0.0,
        help="Abort the search after this many seconds (0 disables).",
    )
    return parser


def route_report(
    graph: GraphStore,
    *,
    start_lon: float,
    start_lat: float,
    end_lon: float,
    end_lat: float,
    timeout_s: float = 0.0,
) -> dict[str, Any]:
    plan = plan_route(
        graph,
        start_lon=start_lon,
        start_lat=start_lat,
        goal_lon=end_lon,
        goal_lat=end_lat,
        timeout_s=timeout_s,
    )
    return {
        "found": plan.found,
        "start_vertex": plan.start_vertex,
        "goal_vertex": plan.goal_vertex,
        "nodes": list(plan.nodes),
        "distance_miles": round(plan.distance_miles, 6),
        "explored_states": plan.explored_states,
        "no_path_reason": plan.no_path_reason,
        "directions": [instruction.render() for instruction in route_directions(graph, plan.nodes)],
    }


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    graph = load_osm_graph(args.osm)
    report = route_report(
        graph,
        start_lon=args.start_lon,
        start_lat=args.start_lat,
        end_lon=args.end_lon,
        end_lat=args.end_lat,
        timeout_s=max(0.0, float(args.timeout_s)),
    )
    print(json.dumps(report, indent=2))
    return 0 if report["found"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
