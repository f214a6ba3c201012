"""
Dependency graph package — turns a Gradle dependency report into
an idempotent property graph of projects and their dependencies.
"""

from src.depgraph.materializer import GraphMaterializer, GraphPlan, MaterializationSummary, plan_manifest
from src.depgraph.models import Configuration, Dependency, GraphEdge, GraphNode, ProjectManifest
from src.depgraph.report import load_report, parse_report

__all__ = [
    "Configuration",
    "Dependency",
    "GraphEdge",
    "GraphMaterializer",
    "GraphNode",
    "GraphPlan",
    "MaterializationSummary",
    "ProjectManifest",
    "load_report",
    "parse_report",
    "plan_manifest",
]
