"""
Report Ingestion

Wires settings -> Neo4jHandler -> Neo4jGraphStore -> GraphMaterializer
for one dependency report. Used by the command-line entry point.
"""

import logging
from pathlib import Path

from src.depgraph.materializer import GraphMaterializer, MaterializationSummary, plan_manifest
from src.depgraph.report import load_report
from src.depgraph.store import Neo4jGraphStore
from src.shared.config import BaseServiceSettings
from src.shared.database import Neo4jHandler

logger = logging.getLogger("depgraph.ingest")


async def ingest_report(
    path: str | Path,
    settings: BaseServiceSettings | None = None,
    dry_run: bool = False,
    ensure_schema: bool = True,
) -> MaterializationSummary:
    """
    Decode a report file and materialize it into Neo4j.

    With ``dry_run`` the report is decoded and planned but no connection
    is opened; the summary then describes what would be written.

    Raises:
        ManifestDecodeError: The report cannot be read or decoded.
        TraversalError: The dependency tree is deeper than ``max_dependency_depth``.
        StoreError: Neo4j is unreachable or a statement failed.
    """
    settings = settings or BaseServiceSettings()
    manifest = load_report(path)

    if dry_run:
        plan = plan_manifest(manifest, max_depth=settings.max_dependency_depth)
        logger.info("Dry run for %s: nothing written", plan.project)
        return MaterializationSummary.from_plan(plan)

    async with Neo4jHandler.from_settings(settings) as handler:
        store = Neo4jGraphStore(handler)
        if ensure_schema:
            await store.ensure_schema()
        materializer = GraphMaterializer(store, max_depth=settings.max_dependency_depth)
        return await materializer.materialize(manifest)
