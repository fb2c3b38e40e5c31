from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RegionProfile:
    name: str
    carbon_intensity: float  # kg CO2 per kWh


# Grid carbon intensities, kg CO2 per kWh.
REGIONS: tuple[RegionProfile, ...] = (
    RegionProfile("Iceland (Renewable Heavy)", 0.028),
    RegionProfile("Norway (Hydroelectric)", 0.032),
    RegionProfile("France (Nuclear Heavy)", 0.027),
    RegionProfile("Sweden (Mixed Renewable)", 0.039),
    RegionProfile("Canada (Mixed)", 0.137),
    RegionProfile("Google europe-north1", 0.088),  # Finland grid
    RegionProfile("Brazil (Hydro Heavy)", 0.103),
    RegionProfile("United Kingdom", 0.237),
    RegionProfile("United States (Average)", 0.345),
    RegionProfile("Google us-central1", 0.243),  # Iowa grid
    RegionProfile("Japan", 0.463),
    RegionProfile("Germany", 0.321),
    RegionProfile("China (Coal Heavy)", 0.510),
    RegionProfile("India (Coal Heavy)", 0.636),
    RegionProfile("Australia (Coal Heavy)", 0.482),
    RegionProfile("South Africa (Coal Heavy)", 0.687),
)

_REGIONS_BY_NAME: dict[str, RegionProfile] = {region.name.lower(): region for region in REGIONS}


def region_by_name(name: str) -> RegionProfile | None:
    return _REGIONS_BY_NAME.get(name.strip().lower())
