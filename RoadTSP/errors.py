"""Error taxonomy for the solving engine.

Every error carries a stable ``reason_code`` so callers can report provenance
without parsing messages.
"""

from __future__ import annotations

from typing import Any


class RoadTSPError(Exception):
    reason_code = "engine_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidInput(RoadTSPError, ValueError):
    """Raised for malformed requests: too few nodes, duplicate ids, unknown start."""

    reason_code = "invalid_input"


class SizeExceeded(RoadTSPError):
    """Raised by a solver when the instance is above its node-count ceiling."""

    reason_code = "size_exceeded"

    def __init__(self, solver: str, n_nodes: int, limit: int):
        super().__init__(
            f"{solver} accepts at most {limit} nodes, got {n_nodes}",
            details={"solver": solver, "n_nodes": n_nodes, "limit": limit},
        )
        self.solver = solver
        self.n_nodes = n_nodes
        self.limit = limit


class NoTourFound(RoadTSPError):
    """Raised when a search finishes without any complete finite tour."""

    reason_code = "no_tour_found"


class NonFiniteMetricError(RoadTSPError, ArithmeticError):
    """Raised when a metric would be published as NaN or infinity."""

    reason_code = "non_finite_metric"


class ConfigError(RoadTSPError, ValueError):
    """Raised when configuration is missing or invalid."""

    reason_code = "config_invalid"


__all__ = [
    "ConfigError",
    "InvalidInput",
    "NoTourFound",
    "NonFiniteMetricError",
    "RoadTSPError",
    "SizeExceeded",
]
