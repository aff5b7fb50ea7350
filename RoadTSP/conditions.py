"""Environmental conditions and the deterministic multipliers derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from RoadTSP.errors import InvalidInput


class Weather(str, Enum):
    SUNNY = "sunny"
    RAINY = "rainy"
    FOGGY = "foggy"
    SNOWY = "snowy"
    WINDY = "windy"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class Vehicle(str, Enum):
    CAR = "car"
    BIKE = "bike"
    TRUCK = "truck"
    BUS = "bus"
    AMBULANCE = "ambulance"
    EV = "ev"


_WEATHER_MULTIPLIER: dict[Weather, float] = {
    Weather.SUNNY: 1.0,
    Weather.RAINY: 1.3,
    Weather.FOGGY: 1.4,
    Weather.SNOWY: 1.6,
    Weather.WINDY: 1.1,
}

# Morning and evening peaks, quieter roads at night.
_TIME_OF_DAY_MULTIPLIER: dict[TimeOfDay, float] = {
    TimeOfDay.MORNING: 1.3,
    TimeOfDay.AFTERNOON: 1.0,
    TimeOfDay.EVENING: 1.4,
    TimeOfDay.NIGHT: 0.9,
}


@dataclass(frozen=True)
class VehicleProfile:
    speed_factor: float
    fuel_rate_per_km: float
    cost_per_km: float

    def __post_init__(self) -> None:
        if not self.speed_factor > 0:
            raise InvalidInput(f"speed_factor must be > 0, got {self.speed_factor}")
        if self.fuel_rate_per_km < 0 or self.cost_per_km < 0:
            raise InvalidInput("fuel_rate_per_km and cost_per_km must be >= 0")


DEFAULT_VEHICLE_PROFILES: dict[str, VehicleProfile] = {
    Vehicle.CAR.value: VehicleProfile(speed_factor=1.0, fuel_rate_per_km=0.08, cost_per_km=4.0),
    Vehicle.BIKE.value: VehicleProfile(speed_factor=1.2, fuel_rate_per_km=0.02, cost_per_km=2.5),
    Vehicle.TRUCK.value: VehicleProfile(speed_factor=0.7, fuel_rate_per_km=0.25, cost_per_km=8.0),
    Vehicle.BUS.value: VehicleProfile(speed_factor=0.8, fuel_rate_per_km=0.20, cost_per_km=6.0),
    Vehicle.AMBULANCE.value: VehicleProfile(speed_factor=1.3, fuel_rate_per_km=0.10, cost_per_km=5.0),
    Vehicle.EV.value: VehicleProfile(speed_factor=1.0, fuel_rate_per_km=0.03, cost_per_km=2.0),
}


def _coerce(enum_cls: type[Enum], value: Any, field: str) -> Any:
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidInput(f"Unknown {field} '{value}' (expected one of: {allowed})") from None


@dataclass(frozen=True)
class Conditions:
    """Per-request environmental inputs. Every field is optional."""

    weather: Weather | None = None
    time_of_day: TimeOfDay | None = None
    vehicle: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "weather", _coerce(Weather, self.weather, "weather"))
        object.__setattr__(self, "time_of_day", _coerce(TimeOfDay, self.time_of_day, "time_of_day"))
        if isinstance(self.vehicle, Vehicle):
            object.__setattr__(self, "vehicle", self.vehicle.value)
        elif self.vehicle is not None:
            object.__setattr__(self, "vehicle", str(self.vehicle).strip().lower())

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Conditions":
        if not data:
            return cls()
        unknown = set(data) - {"weather", "time_of_day", "timeOfDay", "vehicle"}
        if unknown:
            raise InvalidInput(f"Unknown condition fields: {sorted(unknown)}")
        return cls(
            weather=data.get("weather"),
            time_of_day=data.get("time_of_day", data.get("timeOfDay")),
            vehicle=data.get("vehicle"),
        )

    def as_dict(self) -> dict[str, str | None]:
        return {
            "weather": self.weather.value if self.weather else None,
            "time_of_day": self.time_of_day.value if self.time_of_day else None,
            "vehicle": self.vehicle,
        }


def weather_multiplier(conditions: Conditions | None) -> float:
    if conditions is None or conditions.weather is None:
        return 1.0
    return _WEATHER_MULTIPLIER[conditions.weather]


def time_of_day_multiplier(conditions: Conditions | None) -> float:
    if conditions is None or conditions.time_of_day is None:
        return 1.0
    return _TIME_OF_DAY_MULTIPLIER[conditions.time_of_day]


def resolve_vehicle(
    conditions: Conditions | None,
    profiles: Mapping[str, VehicleProfile] | None = None,
) -> VehicleProfile:
    """Look up the vehicle profile for ``conditions``; the car profile is the default."""
    table = profiles if profiles is not None else DEFAULT_VEHICLE_PROFILES
    name = conditions.vehicle if conditions is not None and conditions.vehicle else Vehicle.CAR.value
    profile = table.get(name)
    if profile is None:
        raise InvalidInput(f"Unknown vehicle profile '{name}'", details={"known": sorted(table)})
    return profile


def conditions_summary(conditions: Conditions | None) -> dict[str, float | str | None]:
    conditions = conditions or Conditions()
    return {
        **conditions.as_dict(),
        "weather_multiplier": weather_multiplier(conditions),
        "time_of_day_multiplier": time_of_day_multiplier(conditions),
    }


__all__ = [
    "Conditions",
    "DEFAULT_VEHICLE_PROFILES",
    "TimeOfDay",
    "Vehicle",
    "VehicleProfile",
    "Weather",
    "conditions_summary",
    "resolve_vehicle",
    "time_of_day_multiplier",
    "weather_multiplier",
]
