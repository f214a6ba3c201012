"""
Request-scoped dependencies for the gateway routes.

The graph store is created once in the app lifespan and kept on
``app.state``; tests swap it through ``app.dependency_overrides``.
"""

from fastapi import HTTPException, Request

from src.depgraph.materializer import GraphMaterializer
from src.depgraph.store import GraphStore
from src.gateway.config import GatewaySettings


def get_settings(request: Request) -> GatewaySettings:
    return request.app.state.settings


def get_graph_store(request: Request) -> GraphStore:
    store = getattr(request.app.state, "graph_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Graph store is not initialised")
    return store


def get_materializer(request: Request) -> GraphMaterializer:
    settings = get_settings(request)
    return GraphMaterializer(get_graph_store(request), max_depth=settings.max_dependency_depth)
