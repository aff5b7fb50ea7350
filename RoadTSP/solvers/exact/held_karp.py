from __future__ import annotations

import math

import numpy as np

from RoadTSP.graph import Graph
from RoadTSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    best_cycle,
    current_time,
    failed_result,
)
from RoadTSP.utils.taxonomy import AlgorithmFamily

MAX_NODES = 12


class HeldKarpSolver(BaseSolver):
    """Bitmask dynamic programming.

    ``dp[mask, j]`` is the cheapest walk that leaves ``start``, visits exactly
    the nodes in ``mask`` and ends at ``j``. ``parent`` is indexed the same way
    and holds the predecessor of ``j`` on that walk. Infinite edges never
    relax a state.
    """

    name = "held_karp"
    family = AlgorithmFamily.EXACT
    max_nodes = MAX_NODES

    def __init__(self, max_nodes: int = MAX_NODES):
        self.max_nodes = max_nodes

    def solve(self, graph: Graph, start: int = 0) -> AlgorithmResult:
        self.check_ceiling(graph)
        dist_matrix = graph.cost
        start_time = current_time()
        n = graph.n
        full_mask = (1 << n) - 1
        start_bit = 1 << start
        dp = np.full((1 << n, n), np.inf)
        parent = np.full((1 << n, n), -1, dtype=np.int64)
        dp[start_bit, start] = 0.0
        cities = np.arange(n)
        bits = 1 << cities
        relaxed = 0

        # Masks only grow, so increasing order finalises every state before use.
        for mask in range(start_bit, full_mask + 1):
            if not mask & start_bit:
                continue
            outside = cities[(bits & mask) == 0]
            if outside.size == 0:
                continue
            next_masks = mask | bits[outside]
            for j in range(n):
                base = dp[mask, j]
                if not math.isfinite(base):
                    continue
                candidate = base + dist_matrix[j, outside]
                better = candidate < dp[next_masks, outside]
                if not better.any():
                    continue
                dp[next_masks[better], outside[better]] = candidate[better]
                parent[next_masks[better], outside[better]] = j
                relaxed += int(better.sum())

        best_cost = math.inf
        best_last = -1
        for j in range(n):
            if j == start:
                continue
            cost = float(dp[full_mask, j] + dist_matrix[j, start])
            if cost < best_cost:
                best_cost = cost
                best_last = j

        if best_last < 0 or not math.isfinite(best_cost):
            return failed_result(self.name, start_time, relaxations=relaxed)

        path = []
        mask = full_mask
        last = best_last
        while last != start:
            path.append(last)
            prev = int(parent[mask, last])
            mask &= ~(1 << last)
            last = prev
        path.append(start)
        cycle = best_cycle(list(reversed(path)))
        return AlgorithmResult(
            name=self.name,
            path=cycle,
            cost=best_cost,
            elapsed=current_time() - start_time,
            status="complete",
            metadata={"relaxations": relaxed, "states": (1 << (n - 1)) * n},
        )


__all__ = ["HeldKarpSolver", "MAX_NODES"]
