from __future__ import annotations

import heapq
import itertools
import logging
import math
from typing import Callable

import networkx as nx
import numpy as np

from RoadTSP.graph import Graph
from RoadTSP.logging_utils import log_event
from RoadTSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    IterationBudgetExhausted,
    current_time,
    enforce_iteration_budget,
    failed_result,
)
from RoadTSP.solvers.heuristics.nearest_neighbor import NearestNeighborSolver
from RoadTSP.utils.taxonomy import AlgorithmFamily

MAX_NODES = 10
STRICT_MAX_NODES = 9
MAX_ITERATIONS = 50_000
BOUNDS = ("mst", "min_edge")


def _members(mask: int, n: int) -> list[int]:
    return [city for city in range(n) if mask & (1 << city)]


def mst_bound(dist_matrix: np.ndarray, members: list[int]) -> float:
    """Minimum spanning tree weight over ``members`` using the cheaper direction of each pair.

    Any path through all members costs at least this much, so the bound is
    admissible. Returns ``inf`` when the members cannot be spanned by finite
    edges.
    """
    if len(members) <= 1:
        return 0.0
    graph_nx = nx.Graph()
    graph_nx.add_nodes_from(members)
    for a, b in itertools.combinations(members, 2):
        weight = min(float(dist_matrix[a, b]), float(dist_matrix[b, a]))
        if math.isfinite(weight):
            graph_nx.add_edge(a, b, weight=weight)
    if not nx.is_connected(graph_nx):
        return math.inf
    return float(nx.minimum_spanning_tree(graph_nx, weight="weight").size(weight="weight"))


def min_edge_bound(dist_matrix: np.ndarray, current: int, unvisited: list[int], start: int) -> float:
    """Sum of the cheapest admissible outgoing edge of every node still to leave."""
    targets = unvisited + ([start] if start not in unvisited else [])
    total = 0.0
    for city in [current] + unvisited:
        options = [float(dist_matrix[city, t]) for t in targets if t != city]
        if not options:
            continue
        total += min(options)
    return total


class BranchAndBoundSolver(BaseSolver):
    """Best-first branch and bound over partial tours.

    The frontier is a heap keyed by ``accumulated cost + lower bound`` with an
    insertion counter breaking ties. The incumbent is seeded with the
    nearest-neighbor tour, so the result is never worse than that fallback.
    States whose key reaches the incumbent cost are pruned. When the
    expansion budget runs out the best incumbent so far is returned with
    status ``budget_exhausted``.
    """

    name = "branch_and_bound"
    family = AlgorithmFamily.EXACT
    max_nodes = MAX_NODES

    def __init__(
        self,
        max_nodes: int = MAX_NODES,
        max_iterations: int = MAX_ITERATIONS,
        bound: str = "mst",
        weight_by_importance: bool = False,
    ):
        if bound not in BOUNDS:
            raise ValueError(f"Unknown bound '{bound}' (expected one of: {', '.join(BOUNDS)})")
        self.max_nodes = max_nodes
        self.max_iterations = max_iterations
        self.bound = bound
        self.weight_by_importance = weight_by_importance

    def _bound_fn(self, graph: Graph, start: int) -> Callable[[int, int], float]:
        dist_matrix = graph.cost
        n = graph.n
        full_mask = (1 << n) - 1
        cache: dict[tuple[int, int], float] = {}

        def bound(current: int, visited: int) -> float:
            key = (current, visited)
            if key not in cache:
                unvisited = _members(full_mask & ~visited, n)
                if self.bound == "mst":
                    span = (full_mask & ~visited) | (1 << current) | (1 << start)
                    cache[key] = mst_bound(dist_matrix, _members(span, n))
                else:
                    cache[key] = min_edge_bound(dist_matrix, current, unvisited, start)
            return cache[key]

        return bound

    def solve(self, graph: Graph, start: int = 0) -> AlgorithmResult:
        self.check_ceiling(graph)
        dist_matrix = graph.cost
        start_time = current_time()
        n = graph.n
        full_mask = (1 << n) - 1
        bound = self._bound_fn(graph, start)

        seed = NearestNeighborSolver(weight_by_importance=self.weight_by_importance).solve(graph, start=start)
        best_cost = seed.cost if seed.path is not None else math.inf
        best_path: list[int] | None = seed.path
        improved_on_seed = False

        counter = itertools.count()
        frontier: list[tuple[float, int, float, tuple[int, ...], int]] = [
            (bound(start, 1 << start), next(counter), 0.0, (start,), 1 << start)
        ]
        iterations = 0
        pruned = 0
        status = "complete"

        try:
            while frontier:
                enforce_iteration_budget(iterations, self.max_iterations)
                iterations += 1
                key, _, cost, path, visited = heapq.heappop(frontier)
                if key >= best_cost:
                    # Everything left on the heap is at least as expensive.
                    pruned += len(frontier) + 1
                    break
                current = path[-1]
                if visited == full_mask:
                    total = cost + float(dist_matrix[current, start])
                    if total < best_cost:
                        best_cost = total
                        best_path = [*path, start]
                        improved_on_seed = True
                    continue

                for city in range(n):
                    bit = 1 << city
                    if visited & bit:
                        continue
                    edge = float(dist_matrix[current, city])
                    if not math.isfinite(edge):
                        continue
                    new_cost = cost + edge
                    new_visited = visited | bit
                    if new_visited == full_mask:
                        remaining = float(dist_matrix[city, start])
                    else:
                        remaining = bound(city, new_visited)
                    new_key = new_cost + remaining
                    if new_key >= best_cost:
                        pruned += 1
                        continue
                    heapq.heappush(frontier, (new_key, next(counter), new_cost, (*path, city), new_visited))
        except IterationBudgetExhausted:
            status = "budget_exhausted"
            log_event(
                "search_budget_exhausted",
                logging.DEBUG,
                solver=self.name,
                iterations=iterations,
                frontier=len(frontier),
                incumbent=best_cost if math.isfinite(best_cost) else None,
            )

        metadata = {
            "iterations": iterations,
            "pruned": pruned,
            "bound": self.bound,
            "seeded_from_nearest_neighbor": not improved_on_seed,
            "budget_exhausted": status == "budget_exhausted",
        }
        if best_path is None or not math.isfinite(best_cost):
            return failed_result(self.name, start_time, **metadata)

        return AlgorithmResult(
            name=self.name,
            path=best_path,
            cost=best_cost,
            elapsed=current_time() - start_time,
            status=status,
            metadata=metadata,
        )


__all__ = [
    "BOUNDS",
    "BranchAndBoundSolver",
    "MAX_ITERATIONS",
    "MAX_NODES",
    "STRICT_MAX_NODES",
    "mst_bound",
    "min_edge_bound",
]
