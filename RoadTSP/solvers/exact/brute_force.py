from __future__ import annotations

import itertools
import math

from RoadTSP.graph import Graph
from RoadTSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    current_time,
    failed_result,
)
from RoadTSP.utils.taxonomy import AlgorithmFamily

MAX_OTHER_NODES = 8


class BruteForceSolver(BaseSolver):
    """Enumerate every ordering of the non-start nodes and keep the cheapest.

    Ties go to the first permutation in ``itertools.permutations`` order over
    the input order of the nodes.
    """

    name = "brute_force"
    family = AlgorithmFamily.EXACT
    max_nodes = MAX_OTHER_NODES + 1

    def __init__(self, max_other_nodes: int = MAX_OTHER_NODES):
        self.max_nodes = max_other_nodes + 1

    def solve(self, graph: Graph, start: int = 0) -> AlgorithmResult:
        self.check_ceiling(graph)
        dist_matrix = graph.cost
        start_time = current_time()
        others = [city for city in range(graph.n) if city != start]
        best_cost = math.inf
        best_order: tuple[int, ...] | None = None
        evaluated = 0

        for order in itertools.permutations(others):
            evaluated += 1
            cost = 0.0
            prev = start
            for city in order:
                cost += float(dist_matrix[prev, city])
                if cost >= best_cost:
                    break
                prev = city
            else:
                cost += float(dist_matrix[prev, start])
                if cost < best_cost:
                    best_cost = cost
                    best_order = order

        if best_order is None or not math.isfinite(best_cost):
            return failed_result(self.name, start_time, permutations=evaluated)

        return AlgorithmResult(
            name=self.name,
            path=[start, *best_order, start],
            cost=best_cost,
            elapsed=current_time() - start_time,
            status="complete",
            metadata={"permutations": evaluated},
        )


__all__ = ["BruteForceSolver", "MAX_OTHER_NODES"]
