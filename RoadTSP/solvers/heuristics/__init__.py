from RoadTSP.solvers.heuristics.nearest_neighbor import NearestNeighborSolver, importance_factor
from RoadTSP.solvers.heuristics.two_opt import TwoOptImprover

__all__ = [
    "NearestNeighborSolver",
    "TwoOptImprover",
    "importance_factor",
]
