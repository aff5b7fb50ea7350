from RoadTSP.solvers.exact.branch_and_bound import BranchAndBoundSolver
from RoadTSP.solvers.exact.brute_force import BruteForceSolver
from RoadTSP.solvers.exact.held_karp import HeldKarpSolver

__all__ = [
    "BranchAndBoundSolver",
    "BruteForceSolver",
    "HeldKarpSolver",
]
