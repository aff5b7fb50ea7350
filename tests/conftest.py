from __future__ import annotations

import math

import numpy as np
import pytest

from RoadTSP.config import EngineConfig
from RoadTSP.core import RoadTSP
from RoadTSP.graph import Graph, Node, build_graph
from RoadTSP.logging_utils import reset_logger

INF = math.inf


def random_nodes(n: int, seed: int, span: float = 1000.0) -> list[Node]:
    rng = np.random.default_rng(seed)
    coords = rng.random((n, 2)) * span
    return [Node(id=f"n{i}", x=float(x), y=float(y)) for i, (x, y) in enumerate(coords)]


def random_graph(n: int, seed: int) -> Graph:
    return build_graph(random_nodes(n, seed))


def directed_graph(n: int, seed: int) -> Graph:
    rng = np.random.default_rng(seed)
    matrix = rng.uniform(10.0, 100.0, size=(n, n))
    np.fill_diagonal(matrix, 0.0)
    return Graph.from_matrix([f"d{i}" for i in range(n)], matrix)


@pytest.fixture
def engine() -> RoadTSP:
    return RoadTSP(config=EngineConfig())


@pytest.fixture
def unit_square() -> Graph:
    return build_graph(
        [
            Node("A", 0.0, 0.0),
            Node("B", 1.0, 0.0),
            Node("C", 1.0, 1.0),
            Node("D", 0.0, 1.0),
        ]
    )


@pytest.fixture
def nn_trap() -> Graph:
    """Hamiltonian cycles exist (cost 20) but greedy from node 0 gets stuck at node 2."""
    return Graph.from_matrix(
        ["p", "q", "r", "s"],
        [
            [0.0, 1.0, 5.0, 5.0],
            [1.0, 0.0, 5.0, 5.0],
            [5.0, 5.0, 0.0, INF],
            [5.0, 5.0, INF, 0.0],
        ],
    )


@pytest.fixture
def split_graph() -> Graph:
    """Two components with no finite edge between them."""
    return Graph.from_matrix(
        ["a", "b", "c", "d"],
        [
            [0.0, 1.0, INF, INF],
            [1.0, 0.0, INF, INF],
            [INF, INF, 0.0, 1.0],
            [INF, INF, 1.0, 0.0],
        ],
    )


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("ROADTSP_CONFIG", raising=False)
    monkeypatch.delenv("ROADTSP_LOG_LEVEL", raising=False)
    yield
    reset_logger()
