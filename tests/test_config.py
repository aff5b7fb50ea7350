from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from RoadTSP.conditions import Conditions
from RoadTSP.config import EngineConfig, load_config, load_yaml, merge_dicts, save_yaml
from RoadTSP.core import RoadTSP
from RoadTSP.errors import ConfigError
from RoadTSP.logging_utils import LOGGER_NAME, get_logger, log_event, reset_logger
from RoadTSP.utils.taxonomy import Outcome

from conftest import random_graph


def write_yaml(tmp_path: Path, text: str) -> str:
    path = tmp_path / "roadtsp.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults_without_file() -> None:
    config = load_config()
    assert config == EngineConfig.from_dict(EngineConfig().to_dict())
    assert config.limits.held_karp_max_nodes == 12
    assert config.limits.brute_force_max_other_nodes == 8
    assert config.limits.branch_and_bound_max_iterations == 50_000
    assert config.search.bound == "mst"
    assert config.pricing.fuel_price_per_liter == 100.0
    assert set(config.vehicles) == {"car", "bike", "truck", "bus", "ambulance", "ev"}


def test_yaml_overrides_only_named_keys(tmp_path: Path) -> None:
    path = write_yaml(
        tmp_path,
        """
limits:
  held_karp_max_nodes: 5
search:
  bound: min_edge
pricing:
  driver_cost_per_hour: 150
""",
    )
    config = load_config(path)
    assert config.limits.held_karp_max_nodes == 5
    assert config.limits.brute_force_max_other_nodes == 8
    assert config.search.bound == "min_edge"
    assert config.pricing.driver_cost_per_hour == 150
    assert config.pricing.fuel_price_per_liter == 100.0


def test_configured_limit_drives_fallback(tmp_path: Path) -> None:
    engine = RoadTSP(config=load_config(write_yaml(tmp_path, "limits:\n  held_karp_max_nodes: 5\n")))
    result = engine.solve("dynamic-programming", random_graph(6, seed=6), "n0")
    assert result.outcome is Outcome.SUBSTITUTED
    assert result.reason == "size_exceeded"


def test_env_var_points_at_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROADTSP_CONFIG", write_yaml(tmp_path, "limits:\n  strict: true\n"))
    config = load_config()
    assert config.limits.strict is True
    assert config.limits.effective_branch_and_bound_max_nodes == 9


def test_overrides_win_over_file(tmp_path: Path) -> None:
    path = write_yaml(tmp_path, "search:\n  two_opt_max_iterations: 10\n")
    config = load_config(path, overrides={"search": {"two_opt_max_iterations": 20}})
    assert config.search.two_opt_max_iterations == 20


@pytest.mark.parametrize(
    "text",
    [
        "solver:\n  name: x\n",
        "limits:\n  max_everything: 3\n",
        "limits:\n  held_karp_max_nodes: 0\n",
        "limits:\n  held_karp_max_nodes: many\n",
        "search:\n  bound: lagrangian\n",
        "scoring:\n  cost_norm: 0\n",
        "limits: 5\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_config_fails_fast(tmp_path: Path, text: str) -> None:
    with pytest.raises(ConfigError):
        load_config(write_yaml(tmp_path, text))


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_yaml(str(tmp_path / "nope.yaml"))


def test_custom_vehicle_profile(tmp_path: Path) -> None:
    path = write_yaml(
        tmp_path,
        """
vehicles:
  Scooter:
    speed_factor: 2.0
    fuel_rate_per_km: 0.01
    cost_per_km: 1.0
""",
    )
    engine = RoadTSP(config=load_config(path))
    graph = random_graph(5, seed=12)
    car = engine.solve("brute-force", graph, "n0", Conditions(vehicle="car"))
    scooter = engine.solve("brute-force", graph, "n0", Conditions(vehicle="scooter"))
    assert scooter.metrics.time == pytest.approx(car.metrics.time / 2.0)
    assert scooter.metrics.distance == pytest.approx(car.metrics.distance)


def test_save_and_reload_round_trip(tmp_path: Path) -> None:
    config = load_config(overrides={"limits": {"held_karp_max_nodes": 7}})
    path = tmp_path / "nested" / "saved.yaml"
    save_yaml(config.to_dict(), str(path))
    assert load_config(str(path)) == config


def test_merge_dicts_is_recursive_and_pure() -> None:
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    merged = merge_dicts(base, {"a": {"b": 10}, "e": 5})
    assert merged == {"a": {"b": 10, "c": 2}, "d": 3, "e": 5}
    assert base == {"a": {"b": 1, "c": 2}, "d": 3}


def test_log_event_writes_json_lines(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "roadtsp.jsonl"
    reset_logger()
    get_logger("DEBUG", str(log_file))
    log_event("unit_test", foo=1, solver="held_karp")
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.flush()

    record = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert record["message"] == "unit_test"
    assert record["event"] == "unit_test"
    assert record["foo"] == 1
    assert record["solver"] == "held_karp"
    assert record["levelname"] == "INFO"


def test_solve_emits_structured_event(tmp_path: Path) -> None:
    log_file = tmp_path / "solve.jsonl"
    reset_logger()
    get_logger(log_file=str(log_file))
    engine = RoadTSP(config=EngineConfig())
    engine.solve("brute-force", random_graph(12, seed=3), "n0")
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.flush()

    events = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    names = [event["event"] for event in events]
    assert "tsp_fallback" in names
    solved = [event for event in events if event["event"] == "tsp_solve"][-1]
    assert solved["outcome"] == "substituted"
    assert solved["reason"] == "size_exceeded"


def test_logger_is_configured_once() -> None:
    reset_logger()
    first = get_logger()
    count = len(first.handlers)
    assert get_logger() is first
    assert len(first.handlers) == count
    assert first.propagate is False


@pytest.mark.parametrize(
    "text",
    [
        "graph:\n  scale: -1\n",
        "graph:\n  scale: 0\n",
        "graph:\n  base_speed_kmh: 0\n",
        "graph:\n  detour_factor: -0.5\n",
        "graph:\n  metric: manhattan\n",
    ],
)
def test_invalid_graph_defaults_fail_fast(tmp_path: Path, text: str) -> None:
    with pytest.raises(ConfigError):
        load_config(write_yaml(tmp_path, text))


def test_graph_defaults_reach_built_graphs(tmp_path: Path) -> None:
    engine = RoadTSP(config=load_config(write_yaml(tmp_path, "graph:\n  base_speed_kmh: 25\n  detour_factor: 2.0\n")))
    graph = engine.build_graph([{"id": "A", "x": 0, "y": 0}, {"id": "B", "x": 3, "y": 4}])
    assert graph.cost[0, 1] == pytest.approx(10.0)
    assert graph.travel_time[0, 1] == pytest.approx(10.0 / (25.0 / 3.6))

    plain = RoadTSP(config=EngineConfig()).build_graph([{"id": "A", "x": 0, "y": 0}, {"id": "B", "x": 3, "y": 4}])
    assert plain.cost[0, 1] == pytest.approx(5.0)
    assert plain.travel_time[0, 1] == pytest.approx(5.0 / (50.0 / 3.6))
