"""
Graph Materializer

Walks a ProjectManifest and writes it to a graph store as idempotent
upserts, one transaction per manifest:

1. Plan — traverse every configuration's dependency tree depth-first,
   pre-order, and record the de-duplicated sequence of node and edge
   upserts. A dependency that points back at one of its own ancestors
   gets its edge but is not descended into; over-deep trees are
   rejected here, before the store is touched.
2. Apply — execute the plan's statements in a single transaction;
   commit if all succeed, abort on the first failure.

Node identity is the dependency ``name`` alone: two dependencies with
the same name anywhere in the manifest are the same node, even when they
come from different modules. Edges are scoped to the project identity
(``name:version``) and collect the configuration names they were seen in.
"""

import logging
from dataclasses import asdict, dataclass, field

from src.depgraph.models import Dependency, GraphEdge, GraphNode, ProjectManifest
from src.depgraph.store import (
    GraphStore,
    ParameterizedQuery,
    edge_upsert_queries,
    node_upsert_queries,
)
from src.shared.exceptions import (
    MaterializationError,
    StoreError,
    TraversalDepthError,
)
from src.shared.logging import generate_correlation_id
from src.shared.observability import trace_span

logger = logging.getLogger("depgraph.materializer")


# ─── Operations ────────────────────────────────────────────


@dataclass(frozen=True)
class NodeUpsert:
    identity: str

    def queries(self) -> list[ParameterizedQuery]:
        return node_upsert_queries(self.identity)

    def describe(self) -> str:
        return f"UpsertNode({self.identity})"


@dataclass(frozen=True)
class EdgeUpsert:
    source: str
    target: str
    scope: str
    config: str

    def queries(self) -> list[ParameterizedQuery]:
        return edge_upsert_queries(self.source, self.target, self.scope, self.config)

    def describe(self) -> str:
        return f"UpsertEdge({self.source} -> {self.target}, scope={self.scope}, config={self.config})"


# ─── Plan ──────────────────────────────────────────────────


@dataclass
class GraphPlan:
    """
    Ordered, de-duplicated upserts for one manifest.

    Each node identity and each (source, target, scope, config) edge
    annotation appears once, at the position it was first reached.
    """

    project: str
    operations: list[NodeUpsert | EdgeUpsert] = field(default_factory=list)
    _nodes: dict[str, None] = field(default_factory=dict, repr=False)
    _edges: dict[tuple[str, str, str], dict[str, None]] = field(default_factory=dict, repr=False)

    def add_node(self, identity: str) -> bool:
        if identity in self._nodes:
            return False
        self._nodes[identity] = None
        self.operations.append(NodeUpsert(identity))
        return True

    def add_edge(self, source: str, target: str, scope: str, config: str) -> bool:
        configs = self._edges.setdefault((source, target, scope), {})
        if config in configs:
            return False
        configs[config] = None
        self.operations.append(EdgeUpsert(source, target, scope, config))
        return True

    @property
    def nodes(self) -> frozenset[GraphNode]:
        return frozenset(GraphNode(identity) for identity in self._nodes)

    @property
    def edges(self) -> frozenset[GraphEdge]:
        return frozenset(
            GraphEdge(source, target, scope, frozenset(configs))
            for (source, target, scope), configs in self._edges.items()
        )

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    @property
    def statement_count(self) -> int:
        return sum(len(op.queries()) for op in self.operations)

    def to_dict(self) -> dict:
        return {
            "project": self.project,
            "nodes": list(self._nodes),
            "edges": [
                {"source": s, "target": t, "scope": scope, "configs": list(configs)}
                for (s, t, scope), configs in self._edges.items()
            ],
        }


def plan_manifest(manifest: ProjectManifest, max_depth: int | None = None) -> GraphPlan:
    """
    Build the upsert plan for a manifest.

    Traversal is iterative with an explicit stack; children are pushed in
    reverse so they are visited in manifest order (pre-order DFS).

    Args:
        manifest: The decoded report.
        max_depth: Optional bound on dependency depth (direct deps are depth 1).

    Raises:
        TraversalDepthError: A dependency is deeper than ``max_depth``.
    """
    project = manifest.identity
    plan = GraphPlan(project=project)
    plan.add_node(project)

    for configuration in manifest.configurations:
        if not configuration.dependencies:
            continue

        config_name = configuration.name
        root_path = (project,)
        stack: list[tuple[str, Dependency, tuple[str, ...]]] = [
            (project, dep, root_path) for dep in reversed(configuration.dependencies)
        ]

        while stack:
            parent, dep, ancestors = stack.pop()

            depth = len(ancestors)
            if max_depth is not None and depth > max_depth:
                raise TraversalDepthError(depth, max_depth, dep.name)

            plan.add_node(dep.name)
            plan.add_edge(parent, dep.name, project, config_name)

            # Back reference to an ancestor: keep the edge, don't walk the cycle
            if dep.name in ancestors:
                logger.debug(
                    "Back reference %s -> %s in %s, not descending",
                    parent,
                    dep.name,
                    config_name,
                )
                continue

            if dep.children:
                path = (*ancestors, dep.name)
                stack.extend((dep.name, child, path) for child in reversed(dep.children))

    logger.debug(
        "Planned %s: %d nodes, %d edges, %d operations",
        project,
        plan.node_count,
        plan.edge_count,
        len(plan.operations),
    )
    return plan


# ─── Apply ─────────────────────────────────────────────────


@dataclass(frozen=True)
class MaterializationSummary:
    """What a materialization run wrote (or would write, for a dry run)."""

    project: str
    nodes: int
    edges: int
    statements: int
    run_id: str | None = None

    @classmethod
    def from_plan(cls, plan: GraphPlan, run_id: str | None = None) -> "MaterializationSummary":
        return cls(
            project=plan.project,
            nodes=plan.node_count,
            edges=plan.edge_count,
            statements=plan.statement_count,
            run_id=run_id,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class GraphMaterializer:
    """
    Applies manifests to a GraphStore, one all-or-nothing transaction each.

    Usage::

        materializer = GraphMaterializer(store)
        summary = await materializer.materialize(manifest)

    No statement is retried; a caller wanting retries wraps ``materialize``.
    """

    def __init__(self, store: GraphStore, max_depth: int | None = None):
        self._store = store
        self._max_depth = max_depth

    def plan(self, manifest: ProjectManifest) -> GraphPlan:
        return plan_manifest(manifest, max_depth=self._max_depth)

    async def materialize(self, manifest: ProjectManifest) -> MaterializationSummary:
        """Plan and apply a manifest.

        Raises:
            TraversalError: The manifest cannot be walked (nothing was written).
            MaterializationError: A store statement or the commit failed; the
                transaction was aborted and the failing operation is attached.
        """
        return await self.apply(self.plan(manifest))

    async def apply(self, plan: GraphPlan) -> MaterializationSummary:
        """Execute a plan inside one transaction."""
        run_id = generate_correlation_id()
        logger.info(
            "[%s] Materializing %s: %d nodes, %d edges",
            run_id,
            plan.project,
            plan.node_count,
            plan.edge_count,
        )

        with trace_span(
            "depgraph.materialize",
            **{"depgraph.run_id": run_id, "depgraph.project": plan.project},
        ) as span:
            executed = await self._apply_in_transaction(plan, run_id)
            if span is not None:
                span.set_attribute("depgraph.statements", executed)

        logger.info("[%s] Committed %s (%d statements)", run_id, plan.project, executed)
        return MaterializationSummary.from_plan(plan, run_id=run_id)

    async def _apply_in_transaction(self, plan: GraphPlan, run_id: str) -> int:
        try:
            tx = await self._store.begin_transaction()
        except StoreError as e:
            raise MaterializationError(
                f"Cannot begin transaction for {plan.project}: {e}",
                operation="BeginTransaction",
            ) from e

        executed = 0
        try:
            for op in plan.operations:
                for query in op.queries():
                    try:
                        await tx.execute(query)
                    except StoreError as e:
                        raise MaterializationError(
                            f"{op.describe()} failed: {e}", operation=op.describe()
                        ) from e
                    executed += 1

            try:
                await tx.commit()
            except StoreError as e:
                raise MaterializationError(
                    f"Commit for {plan.project} failed: {e}", operation="Commit"
                ) from e
        except BaseException:
            logger.error(
                "[%s] Aborting transaction for %s after %d statements",
                run_id,
                plan.project,
                executed,
            )
            await tx.abort()
            raise

        return executed


async def materialize(
    manifest: ProjectManifest,
    store: GraphStore,
    max_depth: int | None = None,
) -> MaterializationSummary:
    """Materialize one manifest into ``store``."""
    return await GraphMaterializer(store, max_depth=max_depth).materialize(manifest)
