from __future__ import annotations

from RoadTSP.config import SolverLimits
from RoadTSP.graph import Graph
from RoadTSP.utils.taxonomy import AlgorithmKind


class RuleBasedSelector:
    """Pick the strongest algorithm whose ceiling admits the instance."""

    def __init__(self, limits: SolverLimits | None = None):
        self.limits = limits or SolverLimits()

    def predict(self, graph: Graph) -> AlgorithmKind:
        n = graph.n
        # Held-Karp is exact and cheaper than enumeration from four nodes upwards.
        if n <= 3 and n - 1 <= self.limits.brute_force_max_other_nodes:
            return AlgorithmKind.BRUTE_FORCE
        if n <= self.limits.held_karp_max_nodes:
            return AlgorithmKind.DYNAMIC_PROGRAMMING
        if n <= self.limits.effective_branch_and_bound_max_nodes:
            return AlgorithmKind.BRANCH_AND_BOUND
        return AlgorithmKind.NEAREST_NEIGHBOR


__all__ = ["RuleBasedSelector"]
