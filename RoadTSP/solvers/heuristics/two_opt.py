from __future__ import annotations

from typing import Sequence

from RoadTSP.graph import Graph
from RoadTSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    compute_cycle_cost,
    current_time,
)
from RoadTSP.solvers.heuristics.nearest_neighbor import NearestNeighborSolver
from RoadTSP.utils.taxonomy import AlgorithmFamily


class TwoOptImprover(BaseSolver):
    """2-opt local search over an existing closed tour.

    The start node stays fixed at both ends. The input tour is never modified;
    every accepted move builds a new list, and only strictly improving moves
    are accepted, so the result is never worse than the input.
    """

    name = "two_opt"
    family = AlgorithmFamily.HEURISTIC

    def __init__(self, max_iterations: int = 1000):
        self.max_iterations = max_iterations

    def improve(self, graph: Graph, cycle: Sequence[int]) -> AlgorithmResult:
        dist_matrix = graph.cost
        start_time = current_time()
        best = list(cycle)
        best_cost = compute_cycle_cost(dist_matrix, best)
        iterations = 0

        while iterations < self.max_iterations:
            improved = False
            iterations += 1
            for i in range(1, len(best) - 2):
                for j in range(i + 2, len(best)):
                    candidate = best[:i] + best[i:j][::-1] + best[j:]
                    candidate_cost = compute_cycle_cost(dist_matrix, candidate)
                    if candidate_cost + 1e-9 < best_cost:
                        best = candidate
                        best_cost = candidate_cost
                        improved = True
            if not improved:
                break

        return AlgorithmResult(
            name=self.name,
            path=best,
            cost=best_cost,
            elapsed=current_time() - start_time,
            status="complete",
            metadata={"iterations": iterations},
        )

    def solve(self, graph: Graph, start: int = 0) -> AlgorithmResult:
        seed = NearestNeighborSolver().solve(graph, start=start)
        if seed.path is None:
            return seed
        return self.improve(graph, seed.path)


__all__ = ["TwoOptImprover"]
