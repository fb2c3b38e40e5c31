from __future__ import annotations

from app.core.config import settings
from app.services.catalog_service import CatalogCache, build_catalog_cache

catalog_cache = build_catalog_cache(settings)


def get_catalog_cache() -> CatalogCache:
    return catalog_cache
