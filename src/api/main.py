"""
FastAPI main application.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from config import settings
from overlay_packs import OverlayPackOrchestrator, __version__
from overlay_packs.core import ImageClient, OverlayPackError, ReasoningClient
from overlay_packs.services import (
    InMemoryOverlayPackStore,
    OverlayPackStore,
    PostgresOverlayPackStore,
    StorageImageHost,
)
from src.api.middleware import LoggingMiddleware
from src.api.routes import overlays
from src.database import connect_db, disconnect_db, get_pool
from src.models.schemas import ErrorDetail, ErrorResponse, HealthResponse
from src.utils import get_logger, registry
from src.utils.logger import request_id_var

logger = get_logger(__name__)


def build_store() -> OverlayPackStore:
    """Postgres store when a pool is available, else process-local."""
    pool = get_pool()
    if pool is None:
        logger.warning("overlay.cache.in_memory")
        return InMemoryOverlayPackStore()
    return PostgresOverlayPackStore(pool=pool)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    logger.info("app.starting", environment=settings.environment, version=__version__)

    await connect_db()

    reasoning = ReasoningClient()
    image_provider = ImageClient()
    image_host = StorageImageHost()
    store = build_store()
    orchestrator = OverlayPackOrchestrator(
        reasoning=reasoning,
        image_provider=image_provider,
        image_host=image_host,
        store=store,
    )
    app.state.orchestrator = orchestrator
    logger.info("app.ready", store=type(store).__name__)

    yield

    await orchestrator.close()
    await reasoning.close()
    await image_provider.close()
    await image_host.close()
    await store.close()
    await disconnect_db()
    app.state.orchestrator = None
    logger.info("app.stopped")


# Create FastAPI app
app = FastAPI(
    title="Overlay Pack Service",
    description="Generation and caching of AR repair overlay packs",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request/response logging middleware with correlation ID tracking
app.add_middleware(LoggingMiddleware)


# Exception handlers
@app.exception_handler(OverlayPackError)
async def overlay_pack_exception_handler(request: Request, exc: OverlayPackError) -> JSONResponse:
    """Map typed pipeline errors to their HTTP status."""
    logger.warning(
        "api.overlay_pack.error",
        error_code=exc.error_code,
        error=exc.message,
        path=request.url.path,
    )
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=exc.error_code,
            message=exc.message,
            details=exc.details or None,
        ),
        request_id=request_id_var.get(),
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.error(
        "api.unhandled_exception",
        error=str(exc),
        path=request.url.path,
        exc_info=True,
    )

    error_response = ErrorResponse(
        error=ErrorDetail(
            code="INTERNAL_ERROR",
            message="An internal error occurred",
            details={"type": type(exc).__name__} if settings.environment != "production" else None,
        )
    )

    return JSONResponse(
        status_code=500,
        content=error_response.model_dump(mode="json"),
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint with real service checks."""
    from src.utils.health_check import perform_health_checks

    checks = await perform_health_checks(get_pool())
    services = {
        service: result.get("status", False)
        for service, result in checks.items()
    }
    status = "healthy" if all(services.values()) else "degraded"

    return HealthResponse(
        status=status,
        version=__version__,
        services=services,
    )


# Metrics endpoint
@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    if not settings.enable_metrics:
        return JSONResponse(
            status_code=404,
            content={"error": "Metrics are disabled"},
        )

    data = generate_latest(registry)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


# Include routers
app.include_router(overlays.router, tags=["Overlay Packs"])


# Root endpoint
@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Overlay Pack Service",
        "version": __version__,
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
