from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from app.core.config import settings

SERVICE_VERSION = "0.1.0"
REFRESH_SPAN_NAME = "catalog.refresh"

_tracer_provider: TracerProvider | None = None
_httpx_instrumentor: HTTPXClientInstrumentor | None = None


def get_tracer(tracer_provider: trace.TracerProvider | None = None) -> trace.Tracer:
    # Without an explicit provider this is the global one, a no-op until
    # configure_tracing() installs the SDK provider.
    return trace.get_tracer("app.catalog", SERVICE_VERSION, tracer_provider=tracer_provider)


@contextmanager
def catalog_refresh_span(
    source: str,
    tracer_provider: trace.TracerProvider | None = None,
) -> Iterator[trace.Span]:
    tracer = get_tracer(tracer_provider)
    with tracer.start_as_current_span(
        REFRESH_SPAN_NAME,
        attributes={"catalog.source": source},
    ) as span:
        yield span


def record_fetch(*, raw_entries: int, seconds: float) -> None:
    """Attach the upstream response size and latency to the active refresh span."""

    trace.get_current_span().add_event(
        "catalog.fetched",
        {"catalog.raw_entries": raw_entries, "catalog.fetch_seconds": seconds},
    )


def record_refresh_outcome(
    span: trace.Span,
    *,
    provenance: str,
    entries: int,
    stored: bool,
) -> None:
    span.set_attribute("catalog.provenance", provenance)
    span.set_attribute("catalog.entries", entries)
    span.set_attribute("catalog.stored", stored)
    if provenance != "fresh":
        span.set_status(Status(StatusCode.ERROR, f"served {provenance} catalog"))


def configure_tracing(app: FastAPI) -> None:
    global _tracer_provider, _httpx_instrumentor
    if _tracer_provider is not None or not settings.OTEL_ENABLED:
        return

    resource = Resource.create(
        {
            "service.name": settings.PROJECT_NAME,
            "service.namespace": "ai-energy-calculator",
            "service.version": SERVICE_VERSION,
            "deployment.environment": settings.ENVIRONMENT,
        }
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
        headers=settings.otel_headers(),
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)
    # Upstream catalog GETs become child spans of catalog.refresh.
    _httpx_instrumentor = HTTPXClientInstrumentor()
    _httpx_instrumentor.instrument()
    _tracer_provider = provider


def shutdown_tracing() -> None:
    global _tracer_provider, _httpx_instrumentor
    if _tracer_provider is None:
        return
    if _httpx_instrumentor is not None:
        _httpx_instrumentor.uninstrument()
        _httpx_instrumentor = None
    _tracer_provider.shutdown()
    _tracer_provider = None
