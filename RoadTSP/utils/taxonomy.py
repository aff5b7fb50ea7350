from __future__ import annotations

from enum import Enum


class AlgorithmFamily(str, Enum):
    EXACT = "exact"
    HEURISTIC = "heuristic"


class AlgorithmKind(str, Enum):
    """Algorithm identifiers accepted by the dispatcher."""

    NEAREST_NEIGHBOR = "nearest-neighbor"
    BRUTE_FORCE = "brute-force"
    DYNAMIC_PROGRAMMING = "dynamic-programming"
    BRANCH_AND_BOUND = "branch-and-bound"
    AUTO = "auto"


class Outcome(str, Enum):
    SOLVED = "solved"
    SUBSTITUTED = "substituted"
    FAILED = "failed"


__all__ = ["AlgorithmFamily", "AlgorithmKind", "Outcome"]
