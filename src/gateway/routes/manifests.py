"""
Manifest routes — POST /api/manifests and POST /api/manifests/plan.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from src.depgraph.materializer import GraphMaterializer, plan_manifest
from src.depgraph.report import parse_report
from src.gateway.dependencies import get_materializer, get_settings
from src.gateway.config import GatewaySettings
from src.shared.exceptions import ManifestDecodeError, StoreError, TraversalError
from src.shared.logging import setup_logging

logger = setup_logging("depgraph.gateway.manifests", level="INFO")

router = APIRouter()


# ─── Response Models ─────────────────────────────────────────


class MaterializeResponse(BaseModel):
    """Response model for POST /api/manifests."""

    project: str = Field(..., description="Project identity (name:version)")
    nodes: int = Field(..., description="Distinct nodes touched by the run")
    edges: int = Field(..., description="Distinct DependsOn edges touched by the run")
    statements: int = Field(..., description="Statements executed in the transaction")
    run_id: str | None = Field(None, description="Correlation ID of the run")


class PlannedEdge(BaseModel):
    source: str
    target: str
    scope: str
    configs: list[str] = Field(default_factory=list)


class PlanResponse(BaseModel):
    """Response model for POST /api/manifests/plan."""

    project: str = Field(..., description="Project identity (name:version)")
    nodes: list[str] = Field(default_factory=list, description="Node identities in visit order")
    edges: list[PlannedEdge] = Field(default_factory=list, description="Edges with their configs")
    statements: int = Field(..., description="Statements a real run would execute")


def _decode(report: dict[str, Any]):
    try:
        return parse_report(report)
    except ManifestDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ─── POST /api/manifests ────────────────────────────────────


@router.post("/manifests", response_model=MaterializeResponse)
async def materialize_manifest(
    report: dict[str, Any] = Body(..., description="Gradle dependency report JSON"),
    materializer: GraphMaterializer = Depends(get_materializer),
) -> MaterializeResponse:
    """Materialize one dependency report in a single transaction.

    - 422: the report cannot be decoded, or its dependency tree is too deep
    - 503: the graph store failed; nothing from this report was written
    """
    manifest = _decode(report)

    try:
        summary = await materializer.materialize(manifest)
    except TraversalError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreError as e:
        logger.error("Materialization of %s failed: %s", manifest.identity, e)
        raise HTTPException(status_code=503, detail=str(e))

    return MaterializeResponse(**summary.to_dict())


# ─── POST /api/manifests/plan ───────────────────────────────


@router.post("/manifests/plan", response_model=PlanResponse)
async def plan_manifest_route(
    report: dict[str, Any] = Body(..., description="Gradle dependency report JSON"),
    settings: GatewaySettings = Depends(get_settings),
) -> PlanResponse:
    """Return the nodes and edges a report would produce, without writing."""
    manifest = _decode(report)
    try:
        plan = plan_manifest(manifest, max_depth=settings.max_dependency_depth)
    except TraversalError as e:
        raise HTTPException(status_code=422, detail=str(e))

    data = plan.to_dict()
    return PlanResponse(
        project=data["project"],
        nodes=data["nodes"],
        edges=[PlannedEdge(**edge) for edge in data["edges"]],
        statements=plan.statement_count,
    )
