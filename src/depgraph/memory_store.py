"""
In-Memory Graph Store

A GraphStore that keeps the graph in Python dicts and follows the same
semantics as the Cypher statements in ``store.py``: MERGE on nodes,
MATCH-then-MERGE on edges, append-if-absent on edge configs.

Transactions stage their writes on a copy of the committed graph;
commit publishes the copy, abort drops it. ``fail_on`` makes the Nth
executed statement raise StoreError.
"""

import logging

from src.depgraph.models import GraphEdge, GraphNode
from src.depgraph.store import (
    OP_ADD_EDGE_CONFIG,
    OP_ENSURE_EDGE,
    OP_UPSERT_NODE,
    ParameterizedQuery,
)
from src.shared.exceptions import StoreError

logger = logging.getLogger("depgraph.memory_store")

EdgeKey = tuple[str, str, str]


class InMemoryTransaction:
    def __init__(self, store: "InMemoryGraphStore"):
        self._store = store
        self._nodes = set(store._nodes)
        self._edges = {key: list(configs) for key, configs in store._edges.items()}
        self._closed = False

    async def execute(self, query: ParameterizedQuery) -> list[dict]:
        if self._closed:
            raise StoreError("Transaction is closed")
        self._store._tick(query)

        params = query.params
        if query.operation == OP_UPSERT_NODE:
            self._nodes.add(params["name"])
            return []

        key = (params["source"], params["target"], params["project"])
        if query.operation == OP_ENSURE_EDGE:
            if params["source"] not in self._nodes or params["target"] not in self._nodes:
                return []
            self._edges.setdefault(key, [])
            return [{"project": params["project"]}]

        if query.operation == OP_ADD_EDGE_CONFIG:
            configs = self._edges.get(key)
            if configs is None or params["config"] in configs:
                return []
            configs.append(params["config"])
            return [{"config": list(configs)}]

        raise StoreError(f"Unsupported operation: {query.operation}")

    async def commit(self) -> None:
        if self._closed:
            raise StoreError("Transaction is closed")
        self._closed = True
        if self._store.fail_on_commit:
            self._store.aborts += 1
            raise StoreError("commit rejected")
        self._store._nodes = self._nodes
        self._store._edges = self._edges
        self._store.commits += 1

    async def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store.aborts += 1


class InMemoryGraphStore:
    """
    Dict-backed GraphStore for tests and local experiments.

    Dry runs never open a store; the CLI and gateway write to Neo4j.
    """

    def __init__(self, fail_on: int | None = None, fail_on_commit: bool = False):
        self._nodes: set[str] = set()
        self._edges: dict[EdgeKey, list[str]] = {}
        self.fail_on = fail_on
        self.fail_on_commit = fail_on_commit
        self.executed: list[ParameterizedQuery] = []
        self.commits = 0
        self.aborts = 0

    def _tick(self, query: ParameterizedQuery) -> None:
        self.executed.append(query)
        if self.fail_on is not None and len(self.executed) == self.fail_on:
            raise StoreError(f"injected failure on statement {self.fail_on}")

    async def begin_transaction(self) -> InMemoryTransaction:
        return InMemoryTransaction(self)

    # ─── Inspection ────────────────────────────────────────

    @property
    def nodes(self) -> frozenset[GraphNode]:
        return frozenset(GraphNode(name) for name in self._nodes)

    @property
    def edges(self) -> frozenset[GraphEdge]:
        return frozenset(
            GraphEdge(source, target, scope, frozenset(configs))
            for (source, target, scope), configs in self._edges.items()
        )

    def edge_configs(self, source: str, target: str, scope: str) -> list[str] | None:
        """Raw config list of an edge, duplicates included, or None if absent."""
        configs = self._edges.get((source, target, scope))
        return list(configs) if configs is not None else None

    def snapshot(self) -> tuple[frozenset[GraphNode], frozenset[GraphEdge]]:
        return self.nodes, self.edges

    async def verify(self) -> bool:
        return True
