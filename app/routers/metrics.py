from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from app.core.catalog import ModelEntry, find_model
from app.core.energy import compute_metrics
from app.core.regions import region_by_name
from app.dependencies import get_catalog_cache
from app.schemas.metrics import MetricsRequest, MetricsResponse, ModelEntryPayload, RegionPayload
from app.services.catalog_service import CatalogCache
from app.services.observability import record_metrics_request

router = APIRouter(prefix="/api")


async def _resolve_model(
    payload: MetricsRequest,
    cache: CatalogCache,
    response: Response,
) -> ModelEntry | None:
    if payload.model is not None:
        return ModelEntry.from_parameters(
            payload.model.name,
            payload.model.parameters_in_billions,
        )
    if payload.model_name is None:
        return None
    snapshot = await cache.get()
    response.headers["X-Catalog-Source"] = snapshot.provenance.value
    return find_model(snapshot.entries, payload.model_name)


@router.post("/metrics", response_model=MetricsResponse)
async def calculate_metrics(
    payload: MetricsRequest,
    response: Response,
    cache: CatalogCache = Depends(get_catalog_cache),
):
    region = region_by_name(payload.region)
    if region is None:
        raise HTTPException(status_code=422, detail=f"Unknown region: {payload.region}")

    # Unknown or invalid models produce the all-zero result, not an error.
    model = await _resolve_model(payload, cache, response)
    result = compute_metrics(
        model,
        payload.token_count,
        payload.precision,
        payload.pue,
        payload.electricity_price,
        region,
    )
    record_metrics_request(precision=payload.precision.value, model_known=model is not None)

    return MetricsResponse(
        model=(
            ModelEntryPayload(
                name=model.name,
                parameters_in_billions=model.parameters_in_billions,
            )
            if model is not None
            else None
        ),
        region=RegionPayload(name=region.name, carbon_intensity=region.carbon_intensity),
        precision=payload.precision,
        token_count=payload.token_count,
        **result.as_dict(),
    )
