"""Edge weights and tour metrics.

All functions here are pure: the same tour, graph and conditions always give
the same metrics. Score constants live in ``ScoringPolicy`` so that comparisons
between algorithms are reproducible and can be tuned from configuration.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Mapping, Sequence

from RoadTSP.conditions import (
    Conditions,
    VehicleProfile,
    resolve_vehicle,
    time_of_day_multiplier,
    weather_multiplier,
)
from RoadTSP.errors import InvalidInput, NonFiniteMetricError

if TYPE_CHECKING:
    from RoadTSP.graph import Graph


@dataclass(frozen=True)
class Pricing:
    fuel_price_per_liter: float = 100.0
    driver_cost_per_hour: float = 200.0

    def __post_init__(self) -> None:
        if self.fuel_price_per_liter < 0 or self.driver_cost_per_hour < 0:
            raise InvalidInput("Pricing values must be >= 0")


@dataclass(frozen=True)
class ScoringPolicy:
    """Weights and normalisers for ``totalScore``; lower scores are better."""

    distance_norm_km: float = 50.0
    time_norm_hours: float = 2.0
    cost_norm: float = 1000.0
    fuel_norm_liters: float = 10.0
    distance_weight: float = 1.0
    time_weight: float = 1.0
    cost_weight: float = 1.0
    fuel_weight: float = 1.0
    min_score: float = 1e-6

    def __post_init__(self) -> None:
        for name in ("distance_norm_km", "time_norm_hours", "cost_norm", "fuel_norm_liters", "min_score"):
            if not getattr(self, name) > 0:
                raise InvalidInput(f"ScoringPolicy.{name} must be > 0")
        for name in ("distance_weight", "time_weight", "cost_weight", "fuel_weight"):
            if getattr(self, name) < 0:
                raise InvalidInput(f"ScoringPolicy.{name} must be >= 0")


@dataclass(frozen=True)
class Metrics:
    distance: float
    time: float
    cost: float
    fuel: float
    traffic_impact: float
    weather_impact: float
    total_score: float

    def to_dict(self) -> dict[str, float]:
        return {
            "distance": self.distance,
            "time": self.time,
            "cost": self.cost,
            "fuel": self.fuel,
            "trafficImpact": self.traffic_impact,
            "weatherImpact": self.weather_impact,
            "totalScore": self.total_score,
        }


def zero_metrics() -> Metrics:
    """Metrics attached to failed results; nothing was travelled."""
    return Metrics(
        distance=0.0,
        time=0.0,
        cost=0.0,
        fuel=0.0,
        traffic_impact=1.0,
        weather_impact=1.0,
        total_score=0.0,
    )


def edge_cost(distance: float, conditions: Conditions | None = None) -> float:
    """Scale a base edge weight (meters) by the weather and time-of-day multipliers."""
    if distance < 0:
        raise InvalidInput(f"Edge distance must be >= 0, got {distance}")
    return float(distance) * weather_multiplier(conditions) * time_of_day_multiplier(conditions)


def total_score(
    distance: float,
    time: float,
    cost: float,
    fuel: float,
    traffic_impact: float,
    weather_impact: float,
    policy: ScoringPolicy | None = None,
) -> float:
    policy = policy or ScoringPolicy()
    base = (
        policy.distance_weight * (distance / 1000.0) / policy.distance_norm_km
        + policy.time_weight * (time / 3600.0) / policy.time_norm_hours
        + policy.cost_weight * cost / policy.cost_norm
        + policy.fuel_weight * fuel / policy.fuel_norm_liters
    )
    return max(base * traffic_impact * weather_impact, policy.min_score)


def _check_finite(values: Mapping[str, float]) -> None:
    bad = {name: value for name, value in values.items() if not math.isfinite(value)}
    if bad:
        raise NonFiniteMetricError(f"Non-finite metrics: {sorted(bad)}", details={"values": bad})


def tour_metrics(
    tour: Sequence[str],
    graph: "Graph",
    conditions: Conditions | None = None,
    *,
    pricing: Pricing | None = None,
    scoring: ScoringPolicy | None = None,
    vehicles: Mapping[str, VehicleProfile] | None = None,
) -> Metrics:
    """Derive the full metrics bundle for a closed tour of node ids."""
    indices = graph.tour_indices(tour)
    pricing = pricing or Pricing()
    vehicle = resolve_vehicle(conditions, vehicles)
    weather = weather_multiplier(conditions)
    traffic = time_of_day_multiplier(conditions)

    distance = 0.0
    raw_time = 0.0
    for a, b in zip(indices[:-1], indices[1:]):
        distance += float(graph.cost[a, b])
        raw_time += float(graph.travel_time[a, b])

    time = raw_time * weather * traffic / vehicle.speed_factor
    km = distance / 1000.0
    fuel = km * vehicle.fuel_rate_per_km
    cost = (
        km * vehicle.cost_per_km
        + fuel * pricing.fuel_price_per_liter
        + (time / 3600.0) * pricing.driver_cost_per_hour
    )
    score = total_score(distance, time, cost, fuel, traffic, weather, scoring)
    metrics = Metrics(
        distance=distance,
        time=time,
        cost=cost,
        fuel=fuel,
        traffic_impact=traffic,
        weather_impact=weather,
        total_score=score,
    )
    _check_finite(asdict(metrics))
    return metrics


__all__ = [
    "Metrics",
    "Pricing",
    "ScoringPolicy",
    "edge_cost",
    "total_score",
    "tour_metrics",
    "zero_metrics",
]
