from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from opentelemetry.trace import TracerProvider

from app.core.catalog import (
    ESSENTIAL_MODELS,
    FALLBACK_MODELS,
    ModelEntry,
    has_valid_parameters,
    normalize_catalog,
)
from app.core.config import Settings
from app.core.extraction import filter_entries, is_valid_entry
from app.providers.base import CatalogFetchError, CatalogSource
from app.providers.openrouter_provider import OpenRouterCatalogSource
from app.services.observability import record_catalog_fetch, record_catalog_refresh
from app.services.tracing import catalog_refresh_span, record_fetch, record_refresh_outcome

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class CatalogProvenance(str, Enum):
    FRESH = "fresh"
    FALLBACK = "fallback"
    STALE = "stale"


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    entries: tuple[ModelEntry, ...]
    fetched_at: float
    provenance: CatalogProvenance


class CatalogCache:
    """Process-lifetime cache of the normalized model catalog.

    ``get()`` serves the cached snapshot while it is younger than
    ``ttl_seconds`` and every upstream-derived entry still passes the
    current filter; otherwise it runs one refresh cycle. Concurrent callers
    share a single in-flight refresh, and a caller that is cancelled does
    not cancel the refresh.

    A failed refresh never raises: the snapshot becomes the static fallback
    table (or, with ``serve_stale_on_error``, the previous upstream data)
    and the timestamp still advances, so failures are retried at most once
    per window.
    """

    def __init__(
        self,
        source: CatalogSource,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        denylist: Sequence[str] = (),
        fallback: Sequence[ModelEntry] = FALLBACK_MODELS,
        essentials: Sequence[ModelEntry] = ESSENTIAL_MODELS,
        serve_stale_on_error: bool = False,
        clock: Callable[[], float] = time.time,
        tracer_provider: TracerProvider | None = None,
    ) -> None:
        self.source = source
        self.ttl_seconds = ttl_seconds
        self.denylist = tuple(denylist)
        self.fallback = tuple(fallback)
        self.essentials = tuple(essentials)
        self.serve_stale_on_error = serve_stale_on_error
        self._clock = clock
        self._tracer_provider = tracer_provider
        self._snapshot: CatalogSnapshot | None = None
        self._refresh_task: asyncio.Task[CatalogSnapshot] | None = None
        # Bumped by reset(); refreshes started under an older value do not store.
        self._generation = 0

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        return self._snapshot

    def reset(self) -> None:
        self._snapshot = None
        self._refresh_task = None
        self._generation += 1

    def is_fresh(self, snapshot: CatalogSnapshot) -> bool:
        if self._clock() - snapshot.fetched_at >= self.ttl_seconds:
            return False
        if snapshot.provenance is CatalogProvenance.FALLBACK:
            return True
        essential_names = {entry.name.lower() for entry in self.essentials}
        for entry in snapshot.entries:
            if entry.name.lower() in essential_names:
                if not has_valid_parameters(entry.parameters_in_billions):
                    return False
            elif not is_valid_entry(entry, self.denylist):
                return False
        return True

    async def get(self) -> CatalogSnapshot:
        snapshot = self._snapshot
        if snapshot is not None and self.is_fresh(snapshot):
            return snapshot
        return await self.refresh()

    async def refresh(self) -> CatalogSnapshot:
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._run_refresh(self._generation))
            self._refresh_task = task
        return await asyncio.shield(task)

    async def _run_refresh(self, generation: int) -> CatalogSnapshot:
        with catalog_refresh_span(self.source.name, self._tracer_provider) as span:
            try:
                snapshot = await self._load_upstream()
            except CatalogFetchError as exc:
                logger.warning("Catalog refresh from %s failed: %s", self.source.name, exc)
                snapshot = self._degraded_snapshot()
            except Exception:
                logger.exception("Unexpected error while refreshing catalog from %s", self.source.name)
                snapshot = self._degraded_snapshot()

            stored = generation == self._generation
            if stored:
                self._snapshot = snapshot
            else:
                logger.info("Discarding catalog refresh started before reset()")
            record_refresh_outcome(
                span,
                provenance=snapshot.provenance.value,
                entries=len(snapshot.entries),
                stored=stored,
            )

        cached = self._snapshot
        record_catalog_refresh(
            outcome=snapshot.provenance.value,
            entries=len(cached.entries) if cached is not None else 0,
        )
        return snapshot

    async def _load_upstream(self) -> CatalogSnapshot:
        started = time.perf_counter()
        try:
            raw_entries = await self.source.fetch()
        finally:
            fetch_seconds = time.perf_counter() - started
            record_catalog_fetch(seconds=fetch_seconds)
        record_fetch(raw_entries=len(raw_entries), seconds=fetch_seconds)

        entries = filter_entries([raw.name for raw in raw_entries], self.denylist)
        if not entries:
            raise CatalogFetchError(
                f"{self.source.name} returned {len(raw_entries)} entries, none with a usable size"
            )
        catalog = normalize_catalog(entries, self.essentials)
        logger.info(
            "Catalog refreshed from %s: %d of %d upstream entries kept, %d models served",
            self.source.name,
            len(entries),
            len(raw_entries),
            len(catalog),
        )
        return CatalogSnapshot(
            entries=tuple(catalog),
            fetched_at=self._clock(),
            provenance=CatalogProvenance.FRESH,
        )

    def _degraded_snapshot(self) -> CatalogSnapshot:
        previous = self._snapshot
        if (
            self.serve_stale_on_error
            and previous is not None
            and previous.provenance is not CatalogProvenance.FALLBACK
        ):
            logger.warning("Serving stale catalog (%d models)", len(previous.entries))
            return CatalogSnapshot(
                entries=previous.entries,
                fetched_at=self._clock(),
                provenance=CatalogProvenance.STALE,
            )
        logger.warning("Serving fallback catalog (%d models)", len(self.fallback))
        return CatalogSnapshot(
            entries=self.fallback,
            fetched_at=self._clock(),
            provenance=CatalogProvenance.FALLBACK,
        )


def build_catalog_cache(settings: Settings) -> CatalogCache:
    source = OpenRouterCatalogSource(
        settings.CATALOG_SOURCE_URL,
        timeout_seconds=settings.CATALOG_TIMEOUT_SECONDS,
        user_agent=settings.CATALOG_USER_AGENT,
    )
    return CatalogCache(
        source,
        ttl_seconds=settings.CATALOG_TTL_SECONDS,
        denylist=settings.denylist(),
        serve_stale_on_error=settings.CATALOG_SERVE_STALE_ON_ERROR,
    )
