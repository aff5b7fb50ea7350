"""Immutable weighted graph over which every solver runs.

Nodes get dense indices ``0..n-1`` in input order. The cost matrix is computed
once at construction: explicit edges first, then a geometry-derived fallback
for every other pair, so solvers always see a complete matrix unless the
caller opts out with ``fill_missing=False``.

Directionality: distances are symmetric for both metrics. The matrix is only
asymmetric when an explicit edge is declared ``directed`` or when a
``Jitter`` with ``directional=True`` is applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

import numpy as np

from RoadTSP.conditions import Conditions
from RoadTSP.cost_model import edge_cost
from RoadTSP.errors import InvalidInput

EARTH_RADIUS_M = 6_371_000.0
METRICS = ("euclidean", "haversine")
DEFAULT_BASE_SPEED_KMH = 50.0

ROAD_TYPE_MULTIPLIERS: dict[str, float] = {
    "highway": 0.8,
    "city": 1.2,
    "rural": 1.0,
}


@dataclass(frozen=True)
class Node:
    """A stop. With the haversine metric ``x`` is longitude and ``y`` latitude."""

    id: str
    x: float
    y: float
    population: float | None = None
    importance: float | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Node":
        if "id" not in data:
            raise InvalidInput(f"Node is missing an 'id': {dict(data)}")
        attrs = dict(data.get("attributes") or {})
        if "lat" in data or "lng" in data:
            x, y = data.get("lng"), data.get("lat")
        else:
            x, y = data.get("x"), data.get("y")
        if x is None or y is None:
            raise InvalidInput(f"Node '{data['id']}' has no position")
        return cls(
            id=str(data["id"]),
            x=float(x),
            y=float(y),
            population=_optional_float(data.get("population", attrs.get("population"))),
            importance=_optional_float(data.get("importance", attrs.get("importance"))),
        )


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    distance: float | None = None
    road_type: str | None = None
    traffic_factor: float | None = None
    directed: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Edge":
        source = data.get("source", data.get("from"))
        target = data.get("target", data.get("to"))
        if source is None or target is None:
            raise InvalidInput(f"Edge needs 'source' and 'target': {dict(data)}")
        return cls(
            source=str(source),
            target=str(target),
            distance=_optional_float(data.get("distance")),
            road_type=data.get("road_type", data.get("roadType")),
            traffic_factor=_optional_float(data.get("traffic_factor", data.get("trafficFactor"))),
            directed=bool(data.get("directed", False)),
        )


@dataclass(frozen=True)
class Jitter:
    """Seeded traffic perturbation layered on top of deterministic base costs."""

    seed: int
    spread: float = 0.1
    directional: bool = False

    def factors(self, n: int) -> np.ndarray:
        if self.spread < 0:
            raise InvalidInput("Jitter spread must be >= 0")
        rng = np.random.default_rng(self.seed)
        draws = rng.uniform(1.0, 1.0 + self.spread, size=(n, n))
        if not self.directional:
            upper = np.triu(draws, k=1)
            draws = upper + upper.T
        np.fill_diagonal(draws, 1.0)
        return draws


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def _freeze(matrix: np.ndarray) -> np.ndarray:
    matrix.setflags(write=False)
    return matrix


@dataclass(frozen=True, eq=False)
class Graph:
    """Dense cost and raw travel-time matrices for one request.

    ``conditions`` are the ones the cost matrix was weighted with; ``None``
    means the matrix was supplied pre-weighted and the caller names them.
    """

    nodes: tuple[Node, ...]
    cost: np.ndarray = field(repr=False)
    travel_time: np.ndarray = field(repr=False)
    metric: str = "euclidean"
    conditions: Conditions | None = None
    _index: dict[str, int] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self._index:
            object.__setattr__(self, "_index", {node.id: i for i, node in enumerate(self.nodes)})

    @property
    def n(self) -> int:
        return len(self.nodes)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(node.id for node in self.nodes)

    @property
    def is_symmetric(self) -> bool:
        return bool(np.array_equal(self.cost, self.cost.T))

    @property
    def is_complete(self) -> bool:
        return bool(np.all(np.isfinite(self.cost)))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def index_of(self, node_id: str) -> int:
        try:
            return self._index[node_id]
        except KeyError:
            raise InvalidInput(f"Unknown node id '{node_id}'", details={"node_id": node_id}) from None

    def ids_for(self, path: Iterable[int]) -> tuple[str, ...]:
        return tuple(self.nodes[i].id for i in path)

    def tour_indices(self, tour: Sequence[str]) -> list[int]:
        """Validate a closed tour of ids and map it to dense indices."""
        if len(tour) != self.n + 1:
            raise InvalidInput(f"Tour must have {self.n + 1} entries, got {len(tour)}")
        if tour[0] != tour[-1]:
            raise InvalidInput("Tour must start and end at the same node")
        indices = [self.index_of(node_id) for node_id in tour]
        if len(set(indices[:-1])) != self.n:
            raise InvalidInput("Tour must visit every node exactly once")
        return indices

    def path_cost(self, path: Sequence[int]) -> float:
        return float(sum(self.cost[a, b] for a, b in zip(path[:-1], path[1:])))

    @classmethod
    def from_matrix(
        cls,
        nodes: Sequence[str | Node],
        matrix: Any,
        *,
        travel_time: Any | None = None,
        base_speed_kmh: float = DEFAULT_BASE_SPEED_KMH,
        conditions: Conditions | None = None,
    ) -> "Graph":
        """Wrap an already-weighted dense matrix; ``inf`` marks a missing edge.

        Pass ``conditions`` when the matrix already carries their multipliers.
        """
        node_objs = tuple(node if isinstance(node, Node) else Node(id=str(node), x=0.0, y=0.0) for node in nodes)
        _validate_nodes(node_objs)
        cost = np.array(matrix, dtype=float)
        n = len(node_objs)
        if cost.shape != (n, n):
            raise InvalidInput(f"Matrix shape must be ({n},{n}), got {cost.shape}")
        if np.isnan(cost).any():
            raise InvalidInput("Matrix contains NaN")
        if (cost < 0).any():
            raise InvalidInput("Matrix contains negative costs")
        if np.any(np.diag(cost) != 0):
            raise InvalidInput("Matrix diagonal must be zero")
        if travel_time is None:
            times = cost / _speed_mps(base_speed_kmh)
        else:
            times = np.array(travel_time, dtype=float)
            if times.shape != (n, n):
                raise InvalidInput(f"travel_time shape must be ({n},{n}), got {times.shape}")
            if np.isnan(times).any() or (times < 0).any():
                raise InvalidInput("travel_time must be non-negative and not NaN")
        return cls(
            nodes=node_objs,
            cost=_freeze(cost),
            travel_time=_freeze(times),
            metric="matrix",
            conditions=conditions,
        )


def _speed_mps(base_speed_kmh: float) -> float:
    if not base_speed_kmh > 0:
        raise InvalidInput(f"base_speed_kmh must be > 0, got {base_speed_kmh}")
    return base_speed_kmh / 3.6


def _validate_nodes(nodes: Sequence[Node]) -> None:
    if len(nodes) < 2:
        raise InvalidInput(f"A graph needs at least 2 nodes, got {len(nodes)}")
    seen: set[str] = set()
    dupes: list[str] = []
    for node in nodes:
        if node.id in seen:
            dupes.append(node.id)
        seen.add(node.id)
    if dupes:
        raise InvalidInput(f"Duplicate node ids: {sorted(set(dupes))}", details={"duplicates": sorted(set(dupes))})


def pairwise_distances(nodes: Sequence[Node], metric: str = "euclidean", scale: float = 1.0) -> np.ndarray:
    """Straight-line distance matrix in meters."""
    if not scale > 0:
        raise InvalidInput(f"scale must be > 0, got {scale}")
    coords = np.asarray([(node.x, node.y) for node in nodes], dtype=float)
    if not np.all(np.isfinite(coords)):
        raise InvalidInput("Node positions must be finite")
    if metric == "euclidean":
        diff = coords[:, None, :] - coords[None, :, :]
        return np.linalg.norm(diff, axis=-1) * float(scale)
    if metric == "haversine":
        lng = np.radians(coords[:, 0])
        lat = np.radians(coords[:, 1])
        if np.any(np.abs(coords[:, 1]) > 90.0) or np.any(np.abs(coords[:, 0]) > 180.0):
            raise InvalidInput("Haversine positions must be (lng, lat) in degrees")
        dlat = lat[None, :] - lat[:, None]
        dlng = lng[None, :] - lng[:, None]
        a = np.sin(dlat / 2.0) ** 2 + np.cos(lat[:, None]) * np.cos(lat[None, :]) * np.sin(dlng / 2.0) ** 2
        return 2.0 * EARTH_RADIUS_M * np.arctan2(np.sqrt(a), np.sqrt(np.clip(1.0 - a, 0.0, None)))
    raise InvalidInput(f"Unknown metric '{metric}' (expected one of: {', '.join(METRICS)})")


def build_graph(
    nodes: Sequence[Node | Mapping[str, Any]],
    conditions: Conditions | None = None,
    *,
    edges: Sequence[Edge | Mapping[str, Any]] | None = None,
    metric: str = "euclidean",
    scale: float = 1.0,
    detour_factor: float = 1.0,
    base_speed_kmh: float = DEFAULT_BASE_SPEED_KMH,
    fill_missing: bool = True,
    jitter: Jitter | None = None,
) -> Graph:
    """Build the cost and raw travel-time matrices for one solve request.

    Per-edge base weight is ``length * road_type_factor * traffic_factor``;
    the cost matrix applies the weather and time-of-day multipliers on top, and
    raw travel time is the base weight driven at ``base_speed_kmh``.
    """
    node_objs = tuple(node if isinstance(node, Node) else Node.from_mapping(node) for node in nodes)
    _validate_nodes(node_objs)
    if not detour_factor > 0:
        raise InvalidInput(f"detour_factor must be > 0, got {detour_factor}")
    speed = _speed_mps(base_speed_kmh)
    index = {node.id: i for i, node in enumerate(node_objs)}
    n = len(node_objs)

    geometric = pairwise_distances(node_objs, metric=metric, scale=scale) * detour_factor
    base = geometric.copy() if fill_missing else np.full((n, n), math.inf)

    for raw in edges or ():
        edge = raw if isinstance(raw, Edge) else Edge.from_mapping(raw)
        if edge.source not in index or edge.target not in index:
            raise InvalidInput(f"Edge {edge.source}->{edge.target} references an unknown node")
        i, j = index[edge.source], index[edge.target]
        if i == j:
            raise InvalidInput(f"Self-loop on node '{edge.source}'")
        road = ROAD_TYPE_MULTIPLIERS.get(edge.road_type or "rural")
        if road is None:
            raise InvalidInput(f"Unknown road type '{edge.road_type}'")
        length = geometric[i, j] if edge.distance is None else edge.distance
        traffic = 1.0 if edge.traffic_factor is None else edge.traffic_factor
        if math.isnan(length) or length < 0 or not traffic > 0:
            raise InvalidInput(f"Edge {edge.source}->{edge.target} has an invalid distance or traffic factor")
        weight = length * road * traffic
        base[i, j] = weight
        if not edge.directed:
            base[j, i] = weight

    if jitter is not None:
        base = base * jitter.factors(n)
    np.fill_diagonal(base, 0.0)

    cost = base * edge_cost(1.0, conditions)
    travel_time = base / speed
    return Graph(
        nodes=node_objs,
        cost=_freeze(cost),
        travel_time=_freeze(travel_time),
        metric=metric,
        conditions=conditions or Conditions(),
        _index=index,
    )


__all__ = [
    "DEFAULT_BASE_SPEED_KMH",
    "EARTH_RADIUS_M",
    "Edge",
    "Graph",
    "Jitter",
    "METRICS",
    "Node",
    "ROAD_TYPE_MULTIPLIERS",
    "build_graph",
    "pairwise_distances",
]
