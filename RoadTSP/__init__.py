from RoadTSP.conditions import Conditions, TimeOfDay, Vehicle, VehicleProfile, Weather
from RoadTSP.config import EngineConfig, load_config
from RoadTSP.core import RoadTSP, SolveResult, solve
from RoadTSP.cost_model import Metrics, Pricing, ScoringPolicy, edge_cost, tour_metrics
from RoadTSP.errors import (
    ConfigError,
    InvalidInput,
    NoTourFound,
    NonFiniteMetricError,
    RoadTSPError,
    SizeExceeded,
)
from RoadTSP.graph import Edge, Graph, Jitter, Node, build_graph
from RoadTSP.selector import RuleBasedSelector
from RoadTSP.solvers import (
    AlgorithmResult,
    BaseSolver,
    SOLVER_FAMILIES,
    SOLVER_REGISTRY,
    SOLVER_SPECS,
    get_solver,
)
from RoadTSP.utils.taxonomy import AlgorithmFamily, AlgorithmKind, Outcome

__all__ = [
    "AlgorithmFamily",
    "AlgorithmKind",
    "AlgorithmResult",
    "BaseSolver",
    "Conditions",
    "ConfigError",
    "Edge",
    "EngineConfig",
    "Graph",
    "InvalidInput",
    "Jitter",
    "Metrics",
    "Node",
    "NoTourFound",
    "NonFiniteMetricError",
    "Outcome",
    "Pricing",
    "RoadTSP",
    "RoadTSPError",
    "RuleBasedSelector",
    "SOLVER_FAMILIES",
    "SOLVER_REGISTRY",
    "SOLVER_SPECS",
    "ScoringPolicy",
    "SizeExceeded",
    "SolveResult",
    "TimeOfDay",
    "Vehicle",
    "VehicleProfile",
    "Weather",
    "build_graph",
    "edge_cost",
    "get_solver",
    "load_config",
    "solve",
    "tour_metrics",
]
