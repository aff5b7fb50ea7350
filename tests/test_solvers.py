from __future__ import annotations

import math

import pytest

from RoadTSP.errors import SizeExceeded
from RoadTSP.graph import Graph, Node, build_graph
from RoadTSP.solvers import (
    ALGORITHM_SOLVERS,
    SOLVER_FAMILIES,
    SOLVER_REGISTRY,
    BranchAndBoundSolver,
    BruteForceSolver,
    HeldKarpSolver,
    NearestNeighborSolver,
    TwoOptImprover,
    get_solver,
)
from RoadTSP.solvers.base import compute_cycle_cost
from RoadTSP.solvers.exact.branch_and_bound import min_edge_bound, mst_bound
from RoadTSP.solvers.heuristics import importance_factor
from RoadTSP.utils.taxonomy import AlgorithmFamily, AlgorithmKind

from conftest import directed_graph, random_graph

ALL_SOLVERS = [BruteForceSolver, HeldKarpSolver, BranchAndBoundSolver, NearestNeighborSolver]


def assert_closed_tour(graph: Graph, path: list[int], start: int) -> None:
    assert len(path) == graph.n + 1
    assert path[0] == path[-1] == start
    assert sorted(path[:-1]) == list(range(graph.n))


def test_registry_contents() -> None:
    assert set(SOLVER_REGISTRY) == {"brute_force", "held_karp", "branch_and_bound", "nearest_neighbor", "two_opt"}
    assert SOLVER_FAMILIES["held_karp"] is AlgorithmFamily.EXACT
    assert SOLVER_FAMILIES["nearest_neighbor"] is AlgorithmFamily.HEURISTIC
    assert set(ALGORITHM_SOLVERS) == set(AlgorithmKind) - {AlgorithmKind.AUTO}
    assert isinstance(get_solver("held_karp", max_nodes=5), HeldKarpSolver)
    with pytest.raises(KeyError):
        get_solver("simulated_annealing")


@pytest.mark.parametrize("solver_cls", ALL_SOLVERS)
@pytest.mark.parametrize("seed", [0, 1, 2])
def test_solvers_return_closed_tours(solver_cls: type, seed: int) -> None:
    graph = random_graph(7, seed)
    for start in (0, 4):
        result = solver_cls().solve(graph, start=start)
        assert result.status == "complete"
        assert_closed_tour(graph, result.path, start)
        assert result.cost == pytest.approx(compute_cycle_cost(graph.cost, result.path))


@pytest.mark.parametrize("n", [3, 5, 7, 8])
def test_exact_solvers_agree_and_beat_nearest_neighbor(n: int) -> None:
    graph = random_graph(n, seed=100 + n)
    brute = BruteForceSolver().solve(graph)
    dp = HeldKarpSolver().solve(graph)
    bnb = BranchAndBoundSolver().solve(graph)
    nn = NearestNeighborSolver().solve(graph)

    assert dp.cost == pytest.approx(brute.cost)
    assert bnb.cost == pytest.approx(brute.cost)
    assert brute.cost <= nn.cost + 1e-9


@pytest.mark.parametrize("seed", [3, 4])
def test_exact_solvers_agree_on_directed_costs(seed: int) -> None:
    graph = directed_graph(7, seed)
    assert not graph.is_symmetric
    brute = BruteForceSolver().solve(graph, start=2)
    assert HeldKarpSolver().solve(graph, start=2).cost == pytest.approx(brute.cost)
    assert BranchAndBoundSolver().solve(graph, start=2).cost == pytest.approx(brute.cost)
    assert BranchAndBoundSolver(bound="min_edge").solve(graph, start=2).cost == pytest.approx(brute.cost)


@pytest.mark.parametrize("seed", range(5))
def test_branch_and_bound_never_worse_than_nearest_neighbor(seed: int) -> None:
    graph = random_graph(10, seed=200 + seed)
    nn = NearestNeighborSolver().solve(graph)
    for bound in ("mst", "min_edge"):
        bnb = BranchAndBoundSolver(bound=bound).solve(graph)
        assert bnb.cost <= nn.cost + 1e-9
        assert bnb.metadata["bound"] == bound


def test_bounds_do_not_overestimate_optimum() -> None:
    graph = random_graph(8, seed=42)
    optimum = HeldKarpSolver().solve(graph).cost
    assert mst_bound(graph.cost, list(range(graph.n))) <= optimum
    assert min_edge_bound(graph.cost, 0, list(range(1, graph.n)), 0) <= optimum


def test_mst_bound_is_infinite_when_members_are_disconnected(split_graph: Graph) -> None:
    assert math.isinf(mst_bound(split_graph.cost, [0, 1, 2, 3]))
    assert mst_bound(split_graph.cost, [0, 1]) == pytest.approx(1.0)


@pytest.mark.parametrize("solver_cls", ALL_SOLVERS)
def test_two_node_instance(solver_cls: type) -> None:
    graph = build_graph([Node("A", 0.0, 0.0), Node("B", 3.0, 4.0)])
    result = solver_cls().solve(graph)
    assert result.path == [0, 1, 0]
    assert result.cost == pytest.approx(2 * graph.cost[0, 1])


@pytest.mark.parametrize("solver_cls", [BruteForceSolver, HeldKarpSolver, BranchAndBoundSolver])
def test_unit_square_optimum_is_the_perimeter(solver_cls: type, unit_square: Graph) -> None:
    result = solver_cls().solve(unit_square)
    assert result.cost == pytest.approx(4.0)
    assert result.path in ([0, 1, 2, 3, 0], [0, 3, 2, 1, 0])


def test_brute_force_tie_goes_to_first_permutation(unit_square: Graph) -> None:
    assert BruteForceSolver().solve(unit_square).path == [0, 1, 2, 3, 0]


def test_nearest_neighbor_breaks_ties_by_lowest_index() -> None:
    graph = Graph.from_matrix(["s", "a", "b"], [[0.0, 2.0, 2.0], [2.0, 0.0, 2.0], [2.0, 2.0, 0.0]])
    assert NearestNeighborSolver().solve(graph).path == [0, 1, 2, 0]


@pytest.mark.parametrize("solver_cls", [BruteForceSolver, HeldKarpSolver, BranchAndBoundSolver])
def test_exact_solvers_avoid_missing_edges(solver_cls: type, nn_trap: Graph) -> None:
    result = solver_cls().solve(nn_trap)
    assert result.cost == pytest.approx(20.0)
    assert_closed_tour(nn_trap, result.path, 0)
    assert all(math.isfinite(nn_trap.cost[a, b]) for a, b in zip(result.path[:-1], result.path[1:]))


def test_nearest_neighbor_reports_failure_when_stuck(nn_trap: Graph) -> None:
    result = NearestNeighborSolver().solve(nn_trap)
    assert result.status == "failed"
    assert result.path is None
    assert result.metadata["stuck_at"] == 2


@pytest.mark.parametrize("solver_cls", ALL_SOLVERS)
def test_no_tour_when_graph_is_split(solver_cls: type, split_graph: Graph) -> None:
    result = solver_cls().solve(split_graph)
    assert result.status == "failed"
    assert result.path is None
    assert result.cost is None


@pytest.mark.parametrize(
    ("solver", "n"),
    [
        (BruteForceSolver(), 10),
        (HeldKarpSolver(), 13),
        (BranchAndBoundSolver(), 11),
        (BranchAndBoundSolver(max_nodes=9), 10),
    ],
)
def test_ceilings_raise_size_exceeded(solver, n: int) -> None:
    graph = random_graph(n, seed=n)
    with pytest.raises(SizeExceeded) as excinfo:
        solver.solve(graph)
    assert excinfo.value.reason_code == "size_exceeded"
    assert excinfo.value.n_nodes == n


def test_brute_force_accepts_eight_other_nodes() -> None:
    result = BruteForceSolver().solve(random_graph(9, seed=9))
    assert result.status == "complete"
    assert result.metadata["permutations"] == math.factorial(8)


def test_nearest_neighbor_has_no_ceiling() -> None:
    graph = random_graph(60, seed=60)
    assert_closed_tour(graph, NearestNeighborSolver().solve(graph).path, 0)


def test_branch_and_bound_budget_returns_incumbent() -> None:
    graph = random_graph(9, seed=77)
    nn = NearestNeighborSolver().solve(graph)
    result = BranchAndBoundSolver(max_iterations=1).solve(graph)
    assert result.path is not None
    assert result.metadata["iterations"] <= 1
    assert result.cost <= nn.cost + 1e-9


def test_branch_and_bound_budget_without_incumbent_fails(nn_trap: Graph) -> None:
    exhausted = BranchAndBoundSolver(max_iterations=1).solve(nn_trap)
    assert exhausted.status == "failed"
    assert exhausted.metadata["budget_exhausted"] is True

    full = BranchAndBoundSolver().solve(nn_trap)
    assert full.cost == pytest.approx(20.0)
    assert full.metadata["seeded_from_nearest_neighbor"] is False


def test_branch_and_bound_rejects_unknown_bound() -> None:
    with pytest.raises(ValueError):
        BranchAndBoundSolver(bound="lagrangian")


def test_importance_factor() -> None:
    assert importance_factor(Node("a", 0.0, 0.0)) == 1.0
    assert importance_factor(Node("a", 0.0, 0.0, importance=100.0)) == pytest.approx(0.5)
    assert importance_factor(Node("a", 0.0, 0.0, population=500_000)) == pytest.approx(0.9)
    assert importance_factor(Node("a", 0.0, 0.0, population=500_000, importance=50.0)) == pytest.approx(0.675)
    assert importance_factor(Node("a", 0.0, 0.0, importance=250.0)) == pytest.approx(0.5)


def test_importance_weighting_changes_visit_order() -> None:
    nodes = [
        Node("depot", 0.0, 0.0),
        Node("near", 10.0, 0.0),
        Node("city", 0.0, 15.0, population=1_000_000, importance=100.0),
    ]
    graph = build_graph(nodes)
    plain = NearestNeighborSolver().solve(graph)
    weighted = NearestNeighborSolver(weight_by_importance=True).solve(graph)
    assert plain.path == [0, 1, 2, 0]
    assert weighted.path == [0, 2, 1, 0]
    # weighting steers the order only; the reported cost is the real one
    assert weighted.cost == pytest.approx(compute_cycle_cost(graph.cost, weighted.path))


def test_two_opt_never_worse_and_leaves_input_untouched() -> None:
    graph = random_graph(25, seed=5)
    seed = NearestNeighborSolver().solve(graph)
    original = list(seed.path)
    improved = TwoOptImprover().improve(graph, seed.path)

    assert seed.path == original
    assert improved.cost <= seed.cost + 1e-9
    assert_closed_tour(graph, improved.path, 0)
    assert improved.cost == pytest.approx(compute_cycle_cost(graph.cost, improved.path))


def test_two_opt_untangles_crossing_tour(unit_square: Graph) -> None:
    crossing = [0, 2, 1, 3, 0]
    result = TwoOptImprover().improve(unit_square, crossing)
    assert result.cost == pytest.approx(4.0)
    assert result.path[0] == result.path[-1] == 0


def test_solvers_are_deterministic() -> None:
    graph = random_graph(8, seed=8)
    for solver_cls in ALL_SOLVERS:
        assert solver_cls().solve(graph).path == solver_cls().solve(graph).path


def test_two_opt_from_registry_solves_from_scratch() -> None:
    graph = random_graph(20, seed=20)
    improver = get_solver("two_opt", max_iterations=50)
    assert isinstance(improver, TwoOptImprover)
    result = improver.solve(graph, start=3)
    assert_closed_tour(graph, result.path, 3)
    assert result.cost <= NearestNeighborSolver().solve(graph, start=3).cost + 1e-9


def test_two_opt_from_scratch_propagates_greedy_failure(nn_trap: Graph) -> None:
    assert TwoOptImprover().solve(nn_trap).status == "failed"
