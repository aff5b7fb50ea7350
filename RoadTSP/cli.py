from __future__ import annotations

import argparse
import json
import pathlib
import sys
from typing import Any, Iterable, List, Tuple

from RoadTSP.conditions import Conditions, TimeOfDay, Vehicle, Weather
from RoadTSP.config import load_config
from RoadTSP.core import RoadTSP
from RoadTSP.errors import RoadTSPError
from RoadTSP.graph import Graph
from RoadTSP.maps import PRESETS, get_preset, preset_graph
from RoadTSP.reporting import best_result, format_path, results_frame
from RoadTSP.utils.taxonomy import AlgorithmKind

ALGORITHM_CHOICES = [kind.value for kind in AlgorithmKind]


def parse_args(raw_args: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="roadtsp", description="Solve condition-aware TSP tours.")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_problem_args(p: argparse.ArgumentParser) -> None:
        source = p.add_mutually_exclusive_group(required=True)
        source.add_argument("--problem", type=pathlib.Path, help="JSON file with 'nodes' and optional 'edges'.")
        source.add_argument("--preset", choices=sorted(PRESETS), help="Built-in location set.")
        p.add_argument("--select", nargs="+", help="Restrict a preset to these location ids.")
        p.add_argument("--start", help="Start node id (default: first node).")
        p.add_argument("--weather", choices=[w.value for w in Weather])
        p.add_argument("--time-of-day", choices=[t.value for t in TimeOfDay])
        p.add_argument("--vehicle", help=f"Vehicle profile (built-in: {', '.join(v.value for v in Vehicle)}).")
        p.add_argument("--config", type=pathlib.Path, help="YAML engine configuration.")
        p.add_argument("--improve", action="store_true", help="Apply 2-opt to nearest-neighbor tours.")

    solve_p = sub.add_parser("solve", help="Solve with one algorithm and print the result as JSON.")
    add_problem_args(solve_p)
    solve_p.add_argument("--algorithm", choices=ALGORITHM_CHOICES, default=AlgorithmKind.AUTO.value)

    compare_p = sub.add_parser("compare", help="Solve with several algorithms and print a comparison table.")
    add_problem_args(compare_p)
    compare_p.add_argument(
        "--algorithms",
        nargs="+",
        choices=ALGORITHM_CHOICES,
        default=[kind.value for kind in AlgorithmKind if kind is not AlgorithmKind.AUTO],
    )
    compare_p.add_argument("--parallel", action="store_true", help="Run algorithms on a thread pool.")
    compare_p.add_argument("--csv", type=pathlib.Path, help="Also write the table to this CSV file.")

    sub.add_parser("presets", help="List built-in location sets.")
    return parser.parse_args(raw_args)


def load_problem(engine: RoadTSP, args: argparse.Namespace, conditions: Conditions) -> Tuple[Graph, dict[str, str]]:
    if args.preset:
        preset = get_preset(args.preset)
        defaults = engine.config.graph
        graph = preset_graph(
            preset.name,
            conditions,
            selected=args.select,
            base_speed_kmh=defaults.base_speed_kmh,
            detour_factor=defaults.detour_factor,
        )
        return graph, preset.labels()
    with args.problem.open("r", encoding="utf-8") as fh:
        data: dict[str, Any] = json.load(fh)
    graph = engine.build_graph(
        data.get("nodes") or [],
        conditions,
        edges=data.get("edges"),
        metric=data.get("metric"),
        fill_missing=bool(data.get("fill_missing", True)),
    )
    labels = {str(node["id"]): str(node.get("label", node["id"])) for node in data.get("nodes") or []}
    return graph, labels


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "presets":
        for preset in PRESETS.values():
            print(f"{preset.name}: {len(preset.locations)} locations @ {preset.base_speed_kmh:g} km/h")
            for loc in preset.locations:
                print(f"  {loc.id:>4}  {loc.name}")
        return 0

    try:
        engine = RoadTSP(config=load_config(str(args.config) if args.config else None))
        conditions = Conditions(weather=args.weather, time_of_day=args.time_of_day, vehicle=args.vehicle)
        graph, labels = load_problem(engine, args, conditions)
        start = args.start or graph.ids[0]

        if args.command == "solve":
            result = engine.solve(args.algorithm, graph, start, conditions, improve=args.improve)
            payload = result.to_dict()
            payload["route"] = format_path(result, labels)
            print(json.dumps(payload, ensure_ascii=False, indent=2))
            return 0 if result.tour else 1

        results = engine.compare(
            args.algorithms, graph, start, conditions, improve=args.improve, parallel=args.parallel
        )
        frame = results_frame(results)
        print(frame.to_string(index=False))
        best = best_result(results)
        if best is not None:
            print(f"\nbest: {best.algorithm.value} ({format_path(best, labels)})")
        if args.csv:
            args.csv.parent.mkdir(parents=True, exist_ok=True)
            frame.to_csv(args.csv, index=False)
        return 0
    except (RoadTSPError, FileNotFoundError, json.JSONDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
