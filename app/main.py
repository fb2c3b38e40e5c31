import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.core.config import settings
from app.dependencies import catalog_cache
from app.routers import catalog, metrics
from app.services.tracing import SERVICE_VERSION, configure_tracing, shutdown_tracing

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("aienergy")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_tracing(app)
    logger.info(
        "Starting %s in %s mode (catalog source: %s, ttl: %ss)",
        settings.PROJECT_NAME,
        settings.ENVIRONMENT,
        settings.CATALOG_SOURCE_URL,
        settings.CATALOG_TTL_SECONDS,
    )
    yield
    await catalog_cache.source.close()
    shutdown_tracing()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Energy, cost and carbon estimates for LLM text generation.",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

app.include_router(catalog.router)
app.include_router(metrics.router)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id", str(uuid4()))
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


@app.get("/healthz")
async def healthcheck():
    snapshot = catalog_cache.snapshot
    return {
        "status": "ok",
        "catalog": snapshot.provenance.value if snapshot else "empty",
    }


@app.get("/metrics")
async def prometheus_metrics():
    if not settings.PROMETHEUS_METRICS_ENABLED:
        return Response(status_code=204)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
