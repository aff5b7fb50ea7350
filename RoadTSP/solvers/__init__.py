from __future__ import annotations

from typing import Any

from RoadTSP.solvers.base import AlgorithmResult, BaseSolver, SolverSpec
from RoadTSP.solvers.exact import BranchAndBoundSolver, BruteForceSolver, HeldKarpSolver
from RoadTSP.solvers.heuristics import NearestNeighborSolver, TwoOptImprover
from RoadTSP.utils.taxonomy import AlgorithmFamily, AlgorithmKind

SOLVER_SPECS: dict[str, SolverSpec] = {
    solver_cls.name: SolverSpec(
        name=solver_cls.name,
        cls=solver_cls,
        family=solver_cls.family,
    )
    for solver_cls in (
        BruteForceSolver,
        HeldKarpSolver,
        BranchAndBoundSolver,
        NearestNeighborSolver,
        TwoOptImprover,
    )
}

SOLVER_REGISTRY: dict[str, type[BaseSolver]] = {name: spec.cls for name, spec in SOLVER_SPECS.items()}
SOLVER_FAMILIES: dict[str, AlgorithmFamily] = {name: spec.family for name, spec in SOLVER_SPECS.items()}

ALGORITHM_SOLVERS: dict[AlgorithmKind, str] = {
    AlgorithmKind.NEAREST_NEIGHBOR: NearestNeighborSolver.name,
    AlgorithmKind.BRUTE_FORCE: BruteForceSolver.name,
    AlgorithmKind.DYNAMIC_PROGRAMMING: HeldKarpSolver.name,
    AlgorithmKind.BRANCH_AND_BOUND: BranchAndBoundSolver.name,
}


def get_solver(name: str, **kwargs: Any) -> BaseSolver:
    solver_cls = SOLVER_REGISTRY.get(name)
    if solver_cls is None:
        raise KeyError(f"Unknown solver: {name}")
    return solver_cls(**kwargs)


__all__ = [
    "ALGORITHM_SOLVERS",
    "AlgorithmResult",
    "BaseSolver",
    "SOLVER_FAMILIES",
    "SOLVER_REGISTRY",
    "SOLVER_SPECS",
    "AlgorithmFamily",
    "get_solver",
    "BranchAndBoundSolver",
    "BruteForceSolver",
    "HeldKarpSolver",
    "NearestNeighborSolver",
    "TwoOptImprover",
]
