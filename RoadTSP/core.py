from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from RoadTSP.conditions import (
    Conditions,
    conditions_summary,
    resolve_vehicle,
    time_of_day_multiplier,
    weather_multiplier,
)
from RoadTSP.config import EngineConfig, load_config
from RoadTSP.cost_model import Metrics, tour_metrics, zero_metrics
from RoadTSP.errors import InvalidInput, NoTourFound, SizeExceeded
from RoadTSP.graph import DEFAULT_BASE_SPEED_KMH, Edge, Graph, Jitter, Node, build_graph
from RoadTSP.logging_utils import get_logger, log_event
from RoadTSP.selector import RuleBasedSelector
from RoadTSP.solvers import (
    ALGORITHM_SOLVERS,
    AlgorithmResult,
    BaseSolver,
    NearestNeighborSolver,
    TwoOptImprover,
    get_solver,
)
from RoadTSP.utils.taxonomy import AlgorithmKind, Outcome


@dataclass(frozen=True)
class SolveResult:
    """The engine's only output: a closed tour of node ids plus derived metrics.

    ``outcome`` is ``solved`` when the requested algorithm produced the tour,
    ``substituted`` when nearest-neighbor stood in for it (``reason`` says
    why) and ``failed`` when no tour exists, in which case ``tour`` is empty
    and the metrics are zeroed.
    """

    algorithm: AlgorithmKind
    tour: tuple[str, ...]
    metrics: Metrics
    outcome: Outcome
    solver: str | None
    reason: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def substituted(self) -> bool:
        return self.outcome is Outcome.SUBSTITUTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm.value,
            "path": list(self.tour),
            "metrics": self.metrics.to_dict(),
            "outcome": self.outcome.value,
            "solver": self.solver,
            "reason": self.reason,
        }


def _coerce_algorithm(algorithm: AlgorithmKind | str) -> AlgorithmKind:
    if isinstance(algorithm, AlgorithmKind):
        return algorithm
    try:
        return AlgorithmKind(str(algorithm).strip().lower().replace("_", "-"))
    except ValueError:
        allowed = ", ".join(kind.value for kind in AlgorithmKind)
        raise InvalidInput(f"Unknown algorithm '{algorithm}' (expected one of: {allowed})") from None


def _resolve_conditions(graph: Graph, conditions: Conditions | None) -> Conditions | None:
    """Conditions the metrics use; they must price edges the way ``graph.cost`` already does."""
    built = graph.conditions
    if conditions is None:
        return built
    if built is None:
        return conditions
    requested = (weather_multiplier(conditions), time_of_day_multiplier(conditions))
    if requested != (weather_multiplier(built), time_of_day_multiplier(built)):
        raise InvalidInput(
            "Conditions differ from the ones the graph was built with",
            details={"graph": built.as_dict(), "requested": conditions.as_dict()},
        )
    return Conditions(conditions.weather, conditions.time_of_day, conditions.vehicle or built.vehicle)


def _run_solver(solver: BaseSolver, graph: Graph, start: int) -> AlgorithmResult:
    result = solver.solve(graph, start=start)
    log_event(
        "solver_finished",
        logging.DEBUG,
        solver=solver.name,
        status=result.status,
        cost=result.cost,
        solver_elapsed=result.elapsed,
    )
    if result.path is None:
        raise NoTourFound(f"{result.name} found no complete tour", details=dict(result.metadata))
    return result


class RoadTSP:
    """Dispatcher: algorithm choice -> solver -> cost model -> ``SolveResult``.

    Each call owns its graph, frontier and tables; nothing is shared between
    calls, so ``compare(..., parallel=True)`` needs no locking.
    """

    def __init__(self, config: EngineConfig | None = None, selector: RuleBasedSelector | None = None):
        self.config = config if config is not None else load_config()
        self.selector = selector or RuleBasedSelector(self.config.limits)
        get_logger(self.config.logging.level, self.config.logging.file)

    def build_graph(
        self,
        nodes: Sequence[Node | Mapping[str, Any]],
        conditions: Conditions | None = None,
        *,
        edges: Sequence[Edge | Mapping[str, Any]] | None = None,
        metric: str | None = None,
        fill_missing: bool = True,
        jitter: Jitter | None = None,
        **overrides: Any,
    ) -> Graph:
        defaults = self.config.graph
        detour_factor = overrides.pop("detour_factor", defaults.detour_factor)
        base_speed_kmh = overrides.pop("base_speed_kmh", defaults.base_speed_kmh)
        return build_graph(
            nodes,
            conditions,
            edges=edges,
            metric=metric or defaults.metric,
            scale=overrides.pop("scale", defaults.scale),
            detour_factor=1.0 if detour_factor is None else detour_factor,
            base_speed_kmh=DEFAULT_BASE_SPEED_KMH if base_speed_kmh is None else base_speed_kmh,
            fill_missing=fill_missing,
            jitter=jitter,
            **overrides,
        )

    def make_solver(self, kind: AlgorithmKind) -> BaseSolver:
        name = ALGORITHM_SOLVERS.get(kind)
        if name is None:
            raise InvalidInput(f"No solver for algorithm '{kind.value}'")
        limits = self.config.limits
        search = self.config.search
        options: Dict[AlgorithmKind, Dict[str, Any]] = {
            AlgorithmKind.BRUTE_FORCE: {"max_other_nodes": limits.brute_force_max_other_nodes},
            AlgorithmKind.DYNAMIC_PROGRAMMING: {"max_nodes": limits.held_karp_max_nodes},
            AlgorithmKind.BRANCH_AND_BOUND: {
                "max_nodes": limits.effective_branch_and_bound_max_nodes,
                "max_iterations": limits.branch_and_bound_max_iterations,
                "bound": search.bound,
                "weight_by_importance": search.weight_by_importance,
            },
            AlgorithmKind.NEAREST_NEIGHBOR: {"weight_by_importance": search.weight_by_importance},
        }
        return get_solver(name, **options[kind])

    def solve(
        self,
        algorithm: AlgorithmKind | str,
        graph: Graph,
        start: str,
        conditions: Conditions | None = None,
        *,
        improve: bool = False,
    ) -> SolveResult:
        requested = _coerce_algorithm(algorithm)
        start_idx = graph.index_of(start)
        conditions = _resolve_conditions(graph, conditions)
        resolve_vehicle(conditions, self.config.vehicles)
        began = time.perf_counter()

        kind = self.selector.predict(graph) if requested is AlgorithmKind.AUTO else requested
        metadata: Dict[str, Any] = {"n_nodes": graph.n, "conditions": conditions_summary(conditions)}
        if requested is AlgorithmKind.AUTO:
            metadata["selected_algorithm"] = kind.value

        outcome = Outcome.SOLVED
        reason: str | None = None
        solver = self.make_solver(kind)
        try:
            result = _run_solver(solver, graph, start_idx)
        except (SizeExceeded, NoTourFound) as exc:
            if kind is AlgorithmKind.NEAREST_NEIGHBOR:
                return self._failed(requested, graph, exc, began, solver.name)
            outcome = Outcome.SUBSTITUTED
            reason = exc.reason_code
            metadata["fallback_from"] = solver.name
            metadata["fallback_details"] = dict(exc.details)
            log_event(
                "tsp_fallback",
                algorithm=requested.value,
                solver=solver.name,
                reason=reason,
                n_nodes=graph.n,
            )
            solver = self.make_solver(AlgorithmKind.NEAREST_NEIGHBOR)
            try:
                result = _run_solver(solver, graph, start_idx)
            except NoTourFound as inner:
                return self._failed(requested, graph, inner, began, solver.name)

        path = result.path
        metadata["status"] = result.status
        metadata["solver_metadata"] = dict(result.metadata)
        if improve and isinstance(solver, NearestNeighborSolver):
            two_opt = get_solver(TwoOptImprover.name, max_iterations=self.config.search.two_opt_max_iterations)
            improved = two_opt.improve(graph, path)
            metadata["two_opt_iterations"] = improved.metadata["iterations"]
            metadata["two_opt_gain"] = float(result.cost - improved.cost)
            path = improved.path

        tour = graph.ids_for(path)
        metrics = tour_metrics(
            tour,
            graph,
            conditions,
            pricing=self.config.pricing,
            scoring=self.config.scoring,
            vehicles=self.config.vehicles,
        )
        metadata["elapsed"] = time.perf_counter() - began
        log_event(
            "tsp_solve",
            algorithm=requested.value,
            solver=solver.name,
            outcome=outcome.value,
            reason=reason,
            n_nodes=graph.n,
            distance=metrics.distance,
            elapsed=metadata["elapsed"],
        )
        return SolveResult(
            algorithm=requested,
            tour=tour,
            metrics=metrics,
            outcome=outcome,
            solver=solver.name,
            reason=reason,
            metadata=metadata,
        )

    def _failed(
        self,
        requested: AlgorithmKind,
        graph: Graph | None,
        exc: Exception,
        began: float,
        solver: str | None,
    ) -> SolveResult:
        reason = getattr(exc, "reason_code", NoTourFound.reason_code)
        elapsed = time.perf_counter() - began
        log_event(
            "tsp_solve",
            algorithm=requested.value,
            solver=solver,
            outcome=Outcome.FAILED.value,
            reason=reason,
            n_nodes=graph.n if graph is not None else 0,
            elapsed=elapsed,
        )
        return SolveResult(
            algorithm=requested,
            tour=(),
            metrics=zero_metrics(),
            outcome=Outcome.FAILED,
            solver=solver,
            reason=reason,
            metadata={"error": str(exc), "elapsed": elapsed},
        )

    def solve_nodes(
        self,
        algorithm: AlgorithmKind | str,
        nodes: Sequence[Node | Mapping[str, Any]],
        start: str,
        conditions: Conditions | None = None,
        *,
        improve: bool = False,
        **graph_kwargs: Any,
    ) -> SolveResult:
        """Build the graph for one request and solve it.

        Fewer than two nodes is the degenerate case a UI sends before the user
        has picked enough stops; it yields a failed result instead of raising.
        """
        requested = _coerce_algorithm(algorithm)
        if len(nodes) < 2:
            exc = InvalidInput(f"A tour needs at least 2 nodes, got {len(nodes)}")
            return self._failed(requested, None, exc, time.perf_counter(), None)
        graph = self.build_graph(nodes, conditions, **graph_kwargs)
        return self.solve(requested, graph, start, conditions, improve=improve)

    def compare(
        self,
        algorithms: Iterable[AlgorithmKind | str],
        graph: Graph,
        start: str,
        conditions: Conditions | None = None,
        *,
        improve: bool = False,
        parallel: bool = False,
        max_workers: int | None = None,
    ) -> List[SolveResult]:
        """Solve the same instance with several algorithms, results in input order."""
        kinds = [_coerce_algorithm(algorithm) for algorithm in algorithms]
        graph.index_of(start)

        def run(kind: AlgorithmKind) -> SolveResult:
            return self.solve(kind, graph, start, conditions, improve=improve)

        if not parallel or len(kinds) < 2:
            return [run(kind) for kind in kinds]
        with ThreadPoolExecutor(max_workers=max_workers or len(kinds)) as pool:
            return list(pool.map(run, kinds))


def solve(
    algorithm: AlgorithmKind | str,
    graph: Graph,
    start: str,
    conditions: Conditions | None = None,
    *,
    config: EngineConfig | None = None,
    improve: bool = False,
) -> SolveResult:
    return RoadTSP(config=config).solve(algorithm, graph, start, conditions, improve=improve)


__all__ = ["RoadTSP", "SolveResult", "solve"]
