from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Type

import numpy as np

from RoadTSP.errors import SizeExceeded
from RoadTSP.graph import Graph
from RoadTSP.utils.taxonomy import AlgorithmFamily

@dataclass
class AlgorithmResult:
    """Container capturing the outcome of running a TSP solver.

    ``path`` is a closed list of dense node indices (first == last) or ``None``
    when the solver failed.
    """

    name: str
    path: List[int] | None
    cost: float | None
    elapsed: float
    status: str
    metadata: Dict[str, Any] = field(default_factory=dict)

class IterationBudgetExhausted(Exception):
    """Raised when a search uses up its expansion budget."""

def current_time() -> float:
    return time.perf_counter()

def enforce_iteration_budget(iterations: int, max_iterations: int) -> None:
    if iterations >= max_iterations:
        raise IterationBudgetExhausted("Iteration budget exhausted")

def compute_cycle_cost(dist_matrix: np.ndarray, cycle: Sequence[int]) -> float:
    """Compute the cost of a closed path (first node repeated at the end)."""
    if len(cycle) < 2:
        return float("inf")
    cost = 0.0
    for a, b in zip(cycle[:-1], cycle[1:]):
        cost += float(dist_matrix[a, b])
    return cost

def best_cycle(points: Sequence[int]) -> List[int]:
    cycle = list(points)
    if cycle and (len(cycle) == 1 or cycle[0] != cycle[-1]):
        cycle.append(cycle[0])
    return cycle

def failed_result(name: str, start_time: float, **metadata: Any) -> AlgorithmResult:
    return AlgorithmResult(
        name=name,
        path=None,
        cost=None,
        elapsed=current_time() - start_time,
        status="failed",
        metadata=metadata,
    )


@dataclass(frozen=True)
class SolverSpec:
    """Metadata describing a solver implementation."""

    name: str
    cls: Type["BaseSolver"]
    family: AlgorithmFamily

class BaseSolver:
    """Common interface for RoadTSP solvers.

    ``max_nodes`` is the solver's own ceiling; ``None`` means unbounded.
    """

    name: str
    family: AlgorithmFamily
    max_nodes: int | None = None

    def check_ceiling(self, graph: Graph) -> None:
        if self.max_nodes is not None and graph.n > self.max_nodes:
            raise SizeExceeded(self.name, graph.n, self.max_nodes)

    def solve(self, graph: Graph, start: int = 0) -> AlgorithmResult:  # noqa: D401
        """Solve a TSP instance from the dense start index ``start``."""
        raise NotImplementedError

__all__ = [
    "AlgorithmResult",
    "AlgorithmFamily",
    "BaseSolver",
    "IterationBudgetExhausted",
    "SolverSpec",
    "best_cycle",
    "compute_cycle_cost",
    "current_time",
    "enforce_iteration_budget",
    "failed_result",
]
