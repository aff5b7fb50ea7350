"""Built-in location sets for demos and tests.

Positions are (latitude, longitude) pairs; graphs built from them use the
haversine metric with a fixed road detour factor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from RoadTSP.conditions import Conditions
from RoadTSP.errors import InvalidInput
from RoadTSP.graph import Graph, Node, build_graph

ROAD_DETOUR_FACTOR = 1.25


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    lat: float
    lng: float

    def to_node(self) -> Node:
        return Node(id=self.id, x=self.lng, y=self.lat)


@dataclass(frozen=True)
class Preset:
    name: str
    base_speed_kmh: float
    locations: tuple[Location, ...]

    def labels(self) -> dict[str, str]:
        return {loc.id: loc.name for loc in self.locations}


PRESETS: dict[str, Preset] = {
    "karnataka": Preset(
        name="karnataka",
        base_speed_kmh=70.0,
        locations=(
            Location("k1", "Bengaluru", 12.9716, 77.5946),
            Location("k2", "Mysuru", 12.2958, 76.6394),
            Location("k3", "Mangaluru", 12.9141, 74.8560),
            Location("k4", "Hubli", 15.3647, 75.1240),
            Location("k5", "Belagavi", 15.8497, 74.4977),
            Location("k6", "Kalaburagi", 17.3297, 76.8343),
            Location("k7", "Davangere", 14.4644, 75.9932),
            Location("k8", "Ballari", 15.1394, 76.9214),
            Location("k9", "Tumakuru", 13.3379, 77.1140),
            Location("k10", "Shimoga", 13.9299, 75.5681),
            Location("k11", "Hassan", 13.0033, 76.0955),
            Location("k12", "Mandya", 12.5218, 76.8951),
            Location("k13", "Chikmagalur", 13.3161, 75.7720),
            Location("k14", "Raichur", 16.2120, 77.3439),
            Location("k15", "Bijapur", 16.8302, 75.7100),
        ),
    ),
    "bengaluru": Preset(
        name="bengaluru",
        base_speed_kmh=30.0,
        locations=(
            Location("b1", "Majestic", 12.9762, 77.5993),
            Location("b2", "Koramangala", 12.9279, 77.6271),
            Location("b3", "Indiranagar", 12.9719, 77.6412),
            Location("b4", "Whitefield", 12.9698, 77.7500),
            Location("b5", "Electronic City", 12.8456, 77.6603),
            Location("b6", "Hebbal", 13.0358, 77.5970),
            Location("b7", "Jayanagar", 12.9279, 77.5937),
            Location("b8", "Malleshwaram", 13.0030, 77.5747),
            Location("b9", "BTM Layout", 12.9165, 77.6101),
            Location("b10", "Sarjapur", 12.8795, 77.6898),
        ),
    ),
    "mysuru": Preset(
        name="mysuru",
        base_speed_kmh=50.0,
        locations=(
            Location("m1", "Mysuru Palace", 12.3051, 76.6551),
            Location("m2", "Chamundi Hills", 12.2724, 76.6730),
            Location("m3", "KRS Dam", 12.4244, 76.5692),
            Location("m4", "Brindavan Gardens", 12.4244, 76.5692),
            Location("m5", "Mysuru Zoo", 12.3009, 76.6543),
            Location("m6", "Lalitha Mahal", 12.2830, 76.6390),
            Location("m7", "Karanji Lake", 12.3167, 76.6594),
        ),
    ),
}


def get_preset(name: str) -> Preset:
    preset = PRESETS.get(str(name).lower())
    if preset is None:
        raise InvalidInput(f"Unknown preset '{name}' (expected one of: {', '.join(sorted(PRESETS))})")
    return preset


def preset_nodes(name: str, selected: Iterable[str] | None = None) -> list[Node]:
    """Nodes of a preset, optionally restricted to ``selected`` ids (preset order kept)."""
    preset = get_preset(name)
    if selected is None:
        return [loc.to_node() for loc in preset.locations]
    wanted = list(selected)
    known = {loc.id for loc in preset.locations}
    missing = [node_id for node_id in wanted if node_id not in known]
    if missing:
        raise InvalidInput(f"Unknown locations for preset '{preset.name}': {missing}")
    wanted_set = set(wanted)
    return [loc.to_node() for loc in preset.locations if loc.id in wanted_set]


def preset_graph(
    name: str,
    conditions: Conditions | None = None,
    selected: Sequence[str] | None = None,
    *,
    base_speed_kmh: float | None = None,
    detour_factor: float | None = None,
) -> Graph:
    """Haversine graph of a preset; ``None`` keeps the preset's own speed and detour factor."""
    preset = get_preset(name)
    return build_graph(
        preset_nodes(name, selected),
        conditions,
        metric="haversine",
        detour_factor=ROAD_DETOUR_FACTOR if detour_factor is None else detour_factor,
        base_speed_kmh=preset.base_speed_kmh if base_speed_kmh is None else base_speed_kmh,
    )


__all__ = ["Location", "PRESETS", "Preset", "ROAD_DETOUR_FACTOR", "get_preset", "preset_graph", "preset_nodes"]
