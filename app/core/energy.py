from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

from app.core.catalog import ModelEntry, has_valid_parameters
from app.core.regions import RegionProfile

FLOPS_PER_PARAMETER_PER_TOKEN = 2.0
# FLOPs per joule at full precision (conservative accelerator estimate).
BASE_EFFICIENCY_FLOPS_PER_JOULE = 6.59e11
JOULES_PER_KWH = 3.6e6
# Upper bound on tokens per scenario; larger counts do not fit a float exactly.
MAX_TOKEN_COUNT = 10**15


class Precision(str, Enum):
    FP32 = "FP32"
    FP16 = "FP16"
    FP8 = "FP8"


PRECISION_MULTIPLIERS: dict[Precision, float] = {
    Precision.FP32: 1.0,
    Precision.FP16: 2.0,
    Precision.FP8: 4.0,
}


@dataclass(frozen=True, slots=True)
class MetricsResult:
    total_flops: float = 0.0
    total_energy_kwh: float = 0.0
    total_cost: float = 0.0
    cost_per_1m: float = 0.0
    carbon_emissions_kg: float = 0.0
    energy_per_token: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


ZERO_RESULT = MetricsResult()


def compute_metrics(
    model: ModelEntry | None,
    token_count: int,
    precision: Precision | str,
    pue: float,
    electricity_price: float,
    region: RegionProfile,
) -> MetricsResult:
    """Estimate FLOPs, energy, cost and emissions for generating ``token_count`` tokens.

    Returns :data:`ZERO_RESULT` when no usable model is given or when
    ``token_count`` is outside 1..MAX_TOKEN_COUNT. Values are not rounded.
    """

    if model is None or not has_valid_parameters(model.parameters_in_billions):
        return ZERO_RESULT
    if not 0 < token_count <= MAX_TOKEN_COUNT:
        return ZERO_RESULT

    total_flops = FLOPS_PER_PARAMETER_PER_TOKEN * model.parameters_in_billions * 1e9 * token_count
    efficiency = BASE_EFFICIENCY_FLOPS_PER_JOULE * PRECISION_MULTIPLIERS[Precision(precision)]

    energy_joules = total_flops / efficiency
    energy_kwh_base = energy_joules / JOULES_PER_KWH
    total_energy_kwh = energy_kwh_base * pue

    total_cost = total_energy_kwh * electricity_price
    energy_per_1m = (total_energy_kwh / token_count) * 1_000_000
    cost_per_1m = energy_per_1m * electricity_price

    carbon_emissions_kg = total_energy_kwh * region.carbon_intensity
    energy_per_token = total_energy_kwh / token_count

    return MetricsResult(
        total_flops=total_flops,
        total_energy_kwh=total_energy_kwh,
        total_cost=total_cost,
        cost_per_1m=cost_per_1m,
        carbon_emissions_kg=carbon_emissions_kg,
        energy_per_token=energy_per_token,
    )
