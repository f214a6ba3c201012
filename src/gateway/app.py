"""
FastAPI Gateway — HTTP API layer.

Accepts Gradle dependency reports and materializes them into Neo4j.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.depgraph.store import Neo4jGraphStore
from src.gateway.config import GatewaySettings
from src.gateway.routes import health, manifests
from src.shared.database import Neo4jHandler
from src.shared.logging import setup_logging
from src.shared.observability import (
    TracingMiddleware,
    init_tracing,
    is_tracing_enabled,
    shutdown_tracing,
)

# Global settings
settings = GatewaySettings()

logger = setup_logging("depgraph.gateway", level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the FastAPI app.

    Starts tracing (when configured) and connects the shared Neo4j
    handler on startup; closes both on shutdown.
    """
    logger.info("Starting FastAPI Gateway")

    init_tracing()
    if is_tracing_enabled():
        logger.info("Request tracing enabled")
    else:
        logger.info("Request tracing disabled")

    handler = Neo4jHandler.from_settings(settings)
    await handler.connect()
    store = Neo4jGraphStore(handler)
    if settings.ensure_schema:
        await store.ensure_schema()

    app.state.graph_store = store
    logger.info("Gateway initialized successfully")

    yield

    logger.info("Shutting down FastAPI Gateway")
    app.state.graph_store = None
    await handler.close()
    shutdown_tracing()


def create_app(gateway_settings: GatewaySettings | None = None, use_lifespan: bool = True) -> FastAPI:
    """Build the FastAPI app; tests pass ``use_lifespan=False`` and inject a store."""
    gateway_settings = gateway_settings or settings

    application = FastAPI(
        title="Dependency Graph Gateway",
        description="Materializes Gradle dependency reports into a Neo4j property graph",
        version="0.1.0",
        lifespan=lifespan if use_lifespan else None,
    )
    application.state.settings = gateway_settings
    application.state.graph_store = None

    application.add_middleware(
        CORSMiddleware,
        allow_origins=gateway_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(TracingMiddleware)

    application.include_router(manifests.router, prefix="/api", tags=["Manifests"])
    application.include_router(health.router, prefix="/api", tags=["Health"])

    @application.get("/", tags=["Root"])
    async def root():
        """Root endpoint with basic info."""
        return {
            "name": "Dependency Graph Gateway",
            "version": "0.1.0",
            "status": "operational",
            "endpoints": {
                "manifests": "/api/manifests",
                "plan": "/api/manifests/plan",
                "health": "/api/health",
                "graph_health": "/api/graph/health",
            },
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.gateway.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )
