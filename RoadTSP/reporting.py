from __future__ import annotations

from typing import Mapping, Sequence

import pandas as pd

from RoadTSP.core import SolveResult
from RoadTSP.utils.taxonomy import Outcome

RESULT_COLUMNS = [
    "algorithm",
    "solver",
    "outcome",
    "reason",
    "stops",
    "distance",
    "time",
    "cost",
    "fuel",
    "trafficImpact",
    "weatherImpact",
    "totalScore",
]


def results_frame(results: Sequence[SolveResult]) -> pd.DataFrame:
    """One row per result, metric columns named as in the serialised output."""
    rows = []
    for result in results:
        row = {
            "algorithm": result.algorithm.value,
            "solver": result.solver,
            "outcome": result.outcome.value,
            "reason": result.reason,
            "stops": max(len(result.tour) - 1, 0),
        }
        row.update(result.metrics.to_dict())
        rows.append(row)
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def best_result(results: Sequence[SolveResult]) -> SolveResult | None:
    """Lowest ``totalScore`` among non-failed results; ties by distance, then input order."""
    candidates = [
        (result.metrics.total_score, result.metrics.distance, idx)
        for idx, result in enumerate(results)
        if result.outcome is not Outcome.FAILED
    ]
    if not candidates:
        return None
    return results[min(candidates)[2]]


def format_path(result: SolveResult, labels: Mapping[str, str] | None = None) -> str:
    if not result.tour:
        return "No path found"
    labels = labels or {}
    return " → ".join(labels.get(node_id, node_id) for node_id in result.tour)


__all__ = ["RESULT_COLUMNS", "best_result", "format_path", "results_frame"]
