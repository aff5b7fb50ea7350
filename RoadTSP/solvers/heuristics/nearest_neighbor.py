from __future__ import annotations

import math

from RoadTSP.graph import Graph, Node
from RoadTSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    best_cycle,
    compute_cycle_cost,
    current_time,
    failed_result,
)
from RoadTSP.utils.taxonomy import AlgorithmFamily

LARGE_CITY_POPULATION = 300_000
LARGE_CITY_DISCOUNT = 0.9


def importance_factor(node: Node) -> float:
    """Multiplier in (0, 1] that makes significant nodes look closer."""
    factor = 1.0
    if node.importance is not None:
        importance = min(max(float(node.importance), 0.0), 100.0)
        factor *= 1.0 - importance / 200.0
    if node.population is not None and node.population > LARGE_CITY_POPULATION:
        factor *= LARGE_CITY_DISCOUNT
    return factor


class NearestNeighborSolver(BaseSolver):
    """Greedy construction: always move to the cheapest unvisited node.

    With ``weight_by_importance`` the edge cost to each candidate is scaled by
    ``importance_factor`` so that important or populous nodes are visited
    earlier. Infinite edges are never taken; if the walk gets stuck the solver
    reports ``failed``.
    """

    name = "nearest_neighbor"
    family = AlgorithmFamily.HEURISTIC

    def __init__(self, weight_by_importance: bool = False):
        self.weight_by_importance = weight_by_importance

    def solve(self, graph: Graph, start: int = 0) -> AlgorithmResult:
        dist_matrix = graph.cost
        start_time = current_time()
        n = graph.n
        factors = [importance_factor(node) if self.weight_by_importance else 1.0 for node in graph.nodes]
        visited = [start]
        unvisited = [city for city in range(n) if city != start]

        while unvisited:
            last = visited[-1]
            best_score = math.inf
            next_city = -1
            for city in unvisited:
                edge = float(dist_matrix[last, city])
                if not math.isfinite(edge):
                    continue
                score = edge * factors[city]
                if score < best_score:
                    best_score = score
                    next_city = city
            if next_city < 0:
                return failed_result(self.name, start_time, nodes_visited=len(visited), stuck_at=last)
            visited.append(next_city)
            unvisited.remove(next_city)

        cycle = best_cycle(visited)
        cost = compute_cycle_cost(dist_matrix, cycle)
        if not math.isfinite(cost):
            return failed_result(self.name, start_time, nodes_visited=len(visited), stuck_at=visited[-1])
        return AlgorithmResult(
            name=self.name,
            path=cycle,
            cost=cost,
            elapsed=current_time() - start_time,
            status="complete",
            metadata={"nodes_visited": len(visited), "weighted": self.weight_by_importance},
        )


__all__ = ["NearestNeighborSolver", "importance_factor"]
