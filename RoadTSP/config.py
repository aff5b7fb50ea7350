"""Engine configuration.

- Defaults live in the dataclasses below; a YAML file only overrides them.
- Fail fast on missing files, unknown keys and invalid values.
- Configuration objects are frozen once loaded.
"""

from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping

import yaml

from RoadTSP.conditions import DEFAULT_VEHICLE_PROFILES, VehicleProfile
from RoadTSP.cost_model import Pricing, ScoringPolicy
from RoadTSP.errors import ConfigError, InvalidInput
from RoadTSP.graph import METRICS
from RoadTSP.solvers.exact.branch_and_bound import BOUNDS, STRICT_MAX_NODES

CONFIG_ENV_VAR = "ROADTSP_CONFIG"


@dataclass(frozen=True)
class SolverLimits:
    brute_force_max_other_nodes: int = 8
    held_karp_max_nodes: int = 12
    branch_and_bound_max_nodes: int = 10
    branch_and_bound_max_iterations: int = 50_000
    strict: bool = False

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name != "strict" and (not isinstance(value, int) or isinstance(value, bool) or value < 1):
                raise ConfigError(f"limits.{f.name} must be a positive integer, got {value!r}")

    @property
    def effective_branch_and_bound_max_nodes(self) -> int:
        if self.strict:
            return min(self.branch_and_bound_max_nodes, STRICT_MAX_NODES)
        return self.branch_and_bound_max_nodes


@dataclass(frozen=True)
class SearchOptions:
    bound: str = "mst"
    weight_by_importance: bool = False
    two_opt_max_iterations: int = 1000

    def __post_init__(self) -> None:
        if self.bound not in BOUNDS:
            raise ConfigError(f"search.bound must be one of {BOUNDS}, got {self.bound!r}")


@dataclass(frozen=True)
class GraphDefaults:
    """``None`` detour or speed keeps the value the node source carries (presets have their own)."""

    metric: str = "euclidean"
    scale: float = 1.0
    detour_factor: float | None = None
    base_speed_kmh: float | None = None

    def __post_init__(self) -> None:
        if self.metric not in METRICS:
            raise ConfigError(f"graph.metric must be one of {METRICS}, got {self.metric!r}")
        if not self.scale > 0:
            raise ConfigError(f"graph.scale must be > 0, got {self.scale!r}")
        for name in ("detour_factor", "base_speed_kmh"):
            value = getattr(self, name)
            if value is not None and not value > 0:
                raise ConfigError(f"graph.{name} must be > 0, got {value!r}")


@dataclass(frozen=True)
class LoggingOptions:
    level: str = "INFO"
    file: str | None = None


@dataclass(frozen=True)
class EngineConfig:
    limits: SolverLimits = field(default_factory=SolverLimits)
    search: SearchOptions = field(default_factory=SearchOptions)
    graph: GraphDefaults = field(default_factory=GraphDefaults)
    pricing: Pricing = field(default_factory=Pricing)
    scoring: ScoringPolicy = field(default_factory=ScoringPolicy)
    vehicles: Mapping[str, VehicleProfile] = field(default_factory=lambda: dict(DEFAULT_VEHICLE_PROFILES))
    logging: LoggingOptions = field(default_factory=LoggingOptions)

    def to_dict(self) -> Dict[str, Any]:
        out = {f.name: asdict(getattr(self, f.name)) for f in fields(self) if f.name != "vehicles"}
        out["vehicles"] = {name: asdict(profile) for name, profile in self.vehicles.items()}
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        sections = {f.name for f in fields(cls)}
        unknown = set(data) - sections
        if unknown:
            raise ConfigError(f"Unknown config sections: {sorted(unknown)}")
        vehicles = dict(DEFAULT_VEHICLE_PROFILES)
        for name, spec in (data.get("vehicles") or {}).items():
            vehicles[str(name).lower()] = _build(VehicleProfile, spec, f"vehicles.{name}")
        return cls(
            limits=_build(SolverLimits, data.get("limits"), "limits"),
            search=_build(SearchOptions, data.get("search"), "search"),
            graph=_build(GraphDefaults, data.get("graph"), "graph"),
            pricing=_build(Pricing, data.get("pricing"), "pricing"),
            scoring=_build(ScoringPolicy, data.get("scoring"), "scoring"),
            vehicles=vehicles,
            logging=_build(LoggingOptions, data.get("logging"), "logging"),
        )


def _build(section_cls: type, data: Mapping[str, Any] | None, name: str) -> Any:
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config section '{name}' must be a mapping, got {type(data).__name__}")
    allowed = {f.name for f in fields(section_cls)}
    unknown = set(data) - allowed
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {sorted(unknown)}")
    try:
        return section_cls(**data)
    except (InvalidInput, TypeError) as exc:
        raise ConfigError(f"Invalid '{name}' section: {exc}") from exc


def load_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        obj = yaml.safe_load(f)
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ConfigError(f"YAML root must be a mapping (dict). Got: {type(obj).__name__} @ {path}")
    return obj


def save_yaml(obj: Dict[str, Any], path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, allow_unicode=True, sort_keys=False)


def merge_dicts(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    out = deepcopy(base)

    def rec(a: Dict[str, Any], b: Mapping[str, Any]) -> None:
        for k, v in b.items():
            if isinstance(v, Mapping) and isinstance(a.get(k), dict):
                rec(a[k], v)
            else:
                a[k] = deepcopy(v)

    rec(out, override)
    return out


def load_config(path: str | None = None, overrides: Mapping[str, Any] | None = None) -> EngineConfig:
    """Defaults, then the YAML file (``path`` or ``$ROADTSP_CONFIG``), then ``overrides``."""
    data = EngineConfig().to_dict()
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if path:
        data = merge_dicts(data, load_yaml(path))
    if overrides:
        data = merge_dicts(data, overrides)
    return EngineConfig.from_dict(data)


__all__ = [
    "CONFIG_ENV_VAR",
    "EngineConfig",
    "GraphDefaults",
    "LoggingOptions",
    "SearchOptions",
    "SolverLimits",
    "load_config",
    "load_yaml",
    "merge_dicts",
    "save_yaml",
]
