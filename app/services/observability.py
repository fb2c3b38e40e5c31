from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from app.core.config import settings

CATALOG_REFRESH_COUNTER = Counter(
    "aienergy_catalog_refresh_total",
    "Number of catalog refresh cycles by outcome",
    labelnames=["outcome"],
)
CATALOG_ENTRIES = Gauge(
    "aienergy_catalog_entries",
    "Number of models in the currently cached catalog",
)
CATALOG_FETCH_SECONDS = Histogram(
    "aienergy_catalog_fetch_seconds",
    "Upstream catalog request latency (seconds), failed requests included",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 20),
)
METRICS_REQUESTS = Counter(
    "aienergy_metrics_requests_total",
    "Number of metrics computations",
    labelnames=["precision", "model_known"],
)


def record_catalog_fetch(*, seconds: float) -> None:
    if not settings.PROMETHEUS_METRICS_ENABLED:
        return
    CATALOG_FETCH_SECONDS.observe(max(seconds, 0.0))


def record_catalog_refresh(*, outcome: str, entries: int) -> None:
    if not settings.PROMETHEUS_METRICS_ENABLED:
        return
    CATALOG_REFRESH_COUNTER.labels(outcome=outcome).inc()
    CATALOG_ENTRIES.set(entries)


def record_metrics_request(*, precision: str, model_known: bool) -> None:
    if not settings.PROMETHEUS_METRICS_ENABLED:
        return
    METRICS_REQUESTS.labels(
        precision=precision,
        model_known="true" if model_known else "false",
    ).inc()
