from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.config import settings
from app.core.energy import MAX_TOKEN_COUNT, Precision
from app.core.regions import region_by_name


class ModelEntryPayload(BaseModel):
    name: str = Field(..., min_length=1)
    parameters_in_billions: float


class RegionPayload(BaseModel):
    name: str
    carbon_intensity: float


class MetricsRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_name: str | None = Field(None, min_length=1)
    model: ModelEntryPayload | None = None
    token_count: int = Field(settings.DEFAULT_TOKEN_COUNT, ge=0, le=MAX_TOKEN_COUNT)
    precision: Precision = Precision(settings.DEFAULT_PRECISION)
    pue: float = Field(settings.DEFAULT_PUE, ge=1.0)
    electricity_price: float = Field(settings.DEFAULT_ELECTRICITY_PRICE, ge=0.0)
    region: str = Field(settings.DEFAULT_REGION, min_length=1)

    @field_validator("region")
    @classmethod
    def ensure_known_region(cls, value: str) -> str:
        region = region_by_name(value)
        if region is None:
            raise ValueError(f"Unknown region: {value}")
        return region.name

    @model_validator(mode="after")
    def ensure_single_model_source(self) -> MetricsRequest:
        if self.model_name is not None and self.model is not None:
            raise ValueError("Provide either model_name or model, not both")
        return self


class MetricsResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model: ModelEntryPayload | None
    region: RegionPayload
    precision: Precision
    token_count: int
    total_flops: float
    total_energy_kwh: float
    total_cost: float
    cost_per_1m: float
    carbon_emissions_kg: float
    energy_per_token: float
