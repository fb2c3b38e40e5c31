from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from app.core.regions import REGIONS
from app.dependencies import get_catalog_cache
from app.services.catalog_service import CatalogCache

router = APIRouter(prefix="/api")


@router.get("/models")
async def list_models(
    response: Response,
    cache: CatalogCache = Depends(get_catalog_cache),
):
    """Normalized model catalog, largest first. Always answers 200."""

    snapshot = await cache.get()
    response.headers["X-Catalog-Source"] = snapshot.provenance.value
    return [entry.as_dict() for entry in snapshot.entries]


@router.get("/regions")
async def list_regions():
    return [
        {"name": region.name, "carbon_intensity": region.carbon_intensity}
        for region in REGIONS
    ]
