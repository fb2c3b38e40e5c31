from __future__ import annotations

import asyncio

import pytest

from app.core import extraction
from app.core.catalog import ESSENTIAL_MODELS, FALLBACK_MODELS
from app.providers.base import CatalogFetchError, CatalogSource, RawCatalogEntry
from app.services.catalog_service import CatalogCache, CatalogProvenance

DAY = 24 * 60 * 60


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource(CatalogSource):
    def __init__(self, names: list[str] | None = None) -> None:
        super().__init__("fake")
        self.names = names if names is not None else ["Llama 2 70B", "Mistral 7B", "Gemma 2 27B"]
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls = 0

    async def fetch(self) -> list[RawCatalogEntry]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [RawCatalogEntry(name=name) for name in self.names]

    async def close(self) -> None:
        return None


def _cache(source: FakeSource, clock: FakeClock, **kwargs) -> CatalogCache:
    return CatalogCache(source, ttl_seconds=DAY, clock=clock, **kwargs)


@pytest.mark.asyncio
async def test_first_get_fetches_and_normalizes():
    source, clock = FakeSource(), FakeClock()
    cache = _cache(source, clock)

    snapshot = await cache.get()

    assert source.calls == 1
    assert snapshot.provenance is CatalogProvenance.FRESH
    assert snapshot.fetched_at == clock.now
    names = [entry.name for entry in snapshot.entries]
    for essential in ESSENTIAL_MODELS:
        assert essential.name in names
    params = [entry.parameters_in_billions for entry in snapshot.entries]
    assert params == sorted(params, reverse=True)


@pytest.mark.asyncio
async def test_get_within_window_returns_same_snapshot():
    source, clock = FakeSource(), FakeClock()
    cache = _cache(source, clock)

    first = await cache.get()
    clock.advance(DAY - 1)
    second = await cache.get()

    assert second is first
    assert source.calls == 1


@pytest.mark.asyncio
async def test_get_past_window_fetches_once():
    source, clock = FakeSource(), FakeClock()
    cache = _cache(source, clock)

    first = await cache.get()
    clock.advance(DAY)
    second = await cache.get()
    third = await cache.get()

    assert source.calls == 2
    assert second is not first
    assert third is second


@pytest.mark.asyncio
async def test_fetch_failure_serves_fallback_and_rate_limits_retries():
    source, clock = FakeSource(), FakeClock()
    source.error = CatalogFetchError("upstream returned HTTP 503")
    cache = _cache(source, clock)

    snapshot = await cache.get()
    again = await cache.get()

    assert snapshot.provenance is CatalogProvenance.FALLBACK
    assert list(snapshot.entries) == list(FALLBACK_MODELS)
    assert snapshot.entries
    assert again is snapshot
    assert source.calls == 1


@pytest.mark.asyncio
async def test_no_usable_entries_serves_fallback():
    source = FakeSource(["GPT-4o", "Claude 3.5 Sonnet", "Llama 3.1 8B (free)"])
    cache = _cache(source, FakeClock())

    snapshot = await cache.get()

    assert snapshot.provenance is CatalogProvenance.FALLBACK
    assert snapshot.entries == FALLBACK_MODELS


@pytest.mark.asyncio
async def test_unexpected_error_serves_fallback():
    source = FakeSource()
    source.error = RuntimeError("boom")
    cache = _cache(source, FakeClock())

    snapshot = await cache.get()

    assert snapshot.provenance is CatalogProvenance.FALLBACK


@pytest.mark.asyncio
async def test_recovers_after_window_when_upstream_returns():
    source, clock = FakeSource(), FakeClock()
    source.error = CatalogFetchError("timeout")
    cache = _cache(source, clock)

    await cache.get()
    source.error = None
    clock.advance(DAY)
    snapshot = await cache.get()

    assert snapshot.provenance is CatalogProvenance.FRESH
    assert source.calls == 2


@pytest.mark.asyncio
async def test_filter_change_invalidates_cache_within_window():
    source, clock = FakeSource(), FakeClock()
    cache = _cache(source, clock)

    first = await cache.get()
    cache.denylist = ("gemma",)
    second = await cache.get()

    assert source.calls == 2
    assert second is not first
    assert all("gemma" not in entry.name.lower() for entry in second.entries)


@pytest.mark.asyncio
async def test_denylist_does_not_invalidate_essentials_or_fallback():
    source, clock = FakeSource(), FakeClock()
    cache = _cache(source, clock)

    await cache.get()
    cache.denylist = ("grok",)
    await cache.get()

    assert source.calls == 1

    source.error = CatalogFetchError("down")
    clock.advance(DAY)
    await cache.get()
    cache.denylist = ("llama",)
    await cache.get()

    assert source.calls == 2


@pytest.mark.asyncio
async def test_serve_stale_on_error_keeps_previous_entries():
    source, clock = FakeSource(), FakeClock()
    cache = _cache(source, clock, serve_stale_on_error=True)

    fresh = await cache.get()
    source.error = CatalogFetchError("down")
    clock.advance(DAY)
    stale = await cache.get()

    assert stale.provenance is CatalogProvenance.STALE
    assert stale.entries == fresh.entries
    assert stale.fetched_at == clock.now


@pytest.mark.asyncio
async def test_serve_stale_without_history_uses_fallback():
    source = FakeSource()
    source.error = CatalogFetchError("down")
    cache = _cache(source, FakeClock(), serve_stale_on_error=True)

    snapshot = await cache.get()

    assert snapshot.provenance is CatalogProvenance.FALLBACK


@pytest.mark.asyncio
async def test_concurrent_gets_share_one_refresh():
    source = FakeSource()
    source.gate = asyncio.Event()
    cache = _cache(source, FakeClock())

    pending = [asyncio.ensure_future(cache.get()) for _ in range(5)]
    await asyncio.sleep(0)
    source.gate.set()
    snapshots = await asyncio.gather(*pending)

    assert source.calls == 1
    assert all(snapshot is snapshots[0] for snapshot in snapshots)


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_refresh():
    source = FakeSource()
    source.gate = asyncio.Event()
    cache = _cache(source, FakeClock())

    caller = asyncio.ensure_future(cache.get())
    await asyncio.sleep(0)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    source.gate.set()
    snapshot = await cache.refresh()

    assert source.calls == 1
    assert snapshot.provenance is CatalogProvenance.FRESH
    assert cache.snapshot is snapshot


@pytest.mark.asyncio
async def test_reset_clears_snapshot():
    source = FakeSource()
    cache = _cache(source, FakeClock())

    await cache.get()
    cache.reset()

    assert cache.snapshot is None
    await cache.get()
    assert source.calls == 2


@pytest.mark.asyncio
async def test_extraction_change_invalidates_cache_within_window(monkeypatch):
    source, clock = FakeSource(), FakeClock()
    cache = _cache(source, clock)

    first = await cache.get()
    original = extraction.extract_parameters

    def doubled(name):
        value = original(name)
        return None if value is None else value * 2

    monkeypatch.setattr(extraction, "extract_parameters", doubled)
    second = await cache.get()

    assert source.calls == 2
    assert second is not first
    sizes = {entry.name: entry.parameters_in_billions for entry in second.entries}
    assert sizes["Llama 2 70B"] == 140.0
    # essentials are not derived from the extractor and keep their size
    assert sizes["Grok-1 314B"] == 314


@pytest.mark.asyncio
async def test_reset_discards_in_flight_refresh():
    source = FakeSource()
    source.gate = asyncio.Event()
    cache = _cache(source, FakeClock())

    caller = asyncio.ensure_future(cache.get())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    cache.reset()
    source.gate.set()
    snapshot = await caller

    assert snapshot.provenance is CatalogProvenance.FRESH
    assert cache.snapshot is None

    await cache.get()
    assert source.calls == 2
    assert cache.snapshot is not None
