"""
Health routes — GET /api/health and GET /api/graph/health.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.shared.logging import setup_logging

logger = setup_logging("depgraph.gateway.health", level="INFO")

router = APIRouter()


class GraphHealth(BaseModel):
    """Response model for GET /api/graph/health."""

    status: str = Field(..., description="healthy or unhealthy")
    store: str | None = Field(None, description="Graph store implementation")
    error: str | None = Field(None, description="Error message if unhealthy")


@router.get("/graph/health", response_model=GraphHealth)
async def graph_health(request: Request) -> GraphHealth:
    """Check that the graph store is initialised and reachable."""
    store = getattr(request.app.state, "graph_store", None)
    if store is None:
        return GraphHealth(status="unhealthy", error="Graph store is not initialised")

    reachable = await store.verify()
    if not reachable:
        logger.error("Graph store health check failed")
        return GraphHealth(
            status="unhealthy",
            store=type(store).__name__,
            error="Graph store is unreachable",
        )
    return GraphHealth(status="healthy", store=type(store).__name__)


@router.get("/health")
async def simple_health() -> dict:
    """Simple health check endpoint.

    Useful for load balancers and uptime monitors.
    """
    return {
        "status": "healthy",
        "service": "Dependency Graph Gateway",
        "version": "0.1.0",
    }
