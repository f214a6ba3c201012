"""
Graph Store Port

The capability the materializer needs from a graph database: begin a
transaction, execute parameterized statements in it, commit or abort.
Also holds the Cypher for the two logical upserts and the Neo4j adapter.

Graph layout
------------
(:PROJECT {name})-[:DependsOn {project, config: [..]}]->(:PROJECT {name})

``project`` scopes the edge to the project whose report produced it;
``config`` lists every configuration the edge was observed through.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from neo4j.exceptions import DriverError, Neo4jError

from src.shared.database import Neo4jHandler, Neo4jTransaction
from src.shared.exceptions import StoreError

logger = logging.getLogger("depgraph.store")

# ─── Statements ────────────────────────────────────────────

OP_UPSERT_NODE = "upsert_node"
OP_ENSURE_EDGE = "ensure_edge"
OP_ADD_EDGE_CONFIG = "add_edge_config"

UPSERT_NODE_CYPHER = "MERGE (n:PROJECT {name: $name})"

ENSURE_EDGE_CYPHER = """
MATCH (a:PROJECT {name: $source}), (b:PROJECT {name: $target})
MERGE (a)-[r:DependsOn {project: $project}]->(b)
RETURN r.project AS project
"""

# Membership check first so re-running never duplicates a config entry
ADD_EDGE_CONFIG_CYPHER = """
MATCH (a:PROJECT {name: $source})-[r:DependsOn {project: $project}]->(b:PROJECT {name: $target})
WHERE r.config IS NULL OR NOT $config IN r.config
SET r.config = coalesce(r.config, []) + $config
RETURN r.config AS config
"""

SCHEMA_STATEMENTS = [
    "CREATE CONSTRAINT project_name IF NOT EXISTS FOR (p:PROJECT) REQUIRE p.name IS UNIQUE",
    "CREATE INDEX depends_on_project IF NOT EXISTS FOR ()-[r:DependsOn]-() ON (r.project)",
]


@dataclass(frozen=True)
class ParameterizedQuery:
    """A statement plus its parameters, tagged with the logical operation it belongs to."""

    operation: str
    cypher: str
    params: dict[str, Any] = field(default_factory=dict)


def node_upsert_queries(identity: str) -> list[ParameterizedQuery]:
    """Create-if-absent for one node."""
    return [ParameterizedQuery(OP_UPSERT_NODE, UPSERT_NODE_CYPHER, {"name": identity})]


def edge_upsert_queries(
    source: str, target: str, scope: str, config: str
) -> list[ParameterizedQuery]:
    """Ensure the scoped edge exists, then ensure ``config`` is in its config list."""
    edge = {"source": source, "target": target, "project": scope}
    return [
        ParameterizedQuery(OP_ENSURE_EDGE, ENSURE_EDGE_CYPHER, edge),
        ParameterizedQuery(OP_ADD_EDGE_CONFIG, ADD_EDGE_CONFIG_CYPHER, {**edge, "config": config}),
    ]


# ─── Port ──────────────────────────────────────────────────


class GraphTransaction(Protocol):
    """One all-or-nothing unit of work against the store."""

    async def execute(self, query: ParameterizedQuery) -> list[dict]:
        """Run a statement; raises StoreError on failure."""
        ...

    async def commit(self) -> None:
        """Make every executed statement durable; raises StoreError on failure."""
        ...

    async def abort(self) -> None:
        """Discard every executed statement. Never raises."""
        ...


class GraphStore(Protocol):
    async def begin_transaction(self) -> GraphTransaction:
        ...

    async def verify(self) -> bool:
        """True if the store is reachable. Never raises."""
        ...


# ─── Neo4j adapter ─────────────────────────────────────────


class Neo4jGraphTransaction:
    """GraphTransaction over a Neo4j explicit transaction."""

    def __init__(self, tx: Neo4jTransaction):
        self._tx = tx

    async def execute(self, query: ParameterizedQuery) -> list[dict]:
        try:
            return await self._tx.run(query.cypher, query.params)
        except (Neo4jError, DriverError) as e:
            raise StoreError(f"{query.operation} failed: {e}") from e

    async def commit(self) -> None:
        try:
            await self._tx.commit()
        except (Neo4jError, DriverError) as e:
            raise StoreError(f"commit failed: {e}") from e

    async def abort(self) -> None:
        try:
            await self._tx.rollback()
        except (Neo4jError, DriverError) as e:
            # The server discards an unfinished transaction on its own
            logger.warning("Rollback failed, transaction left to expire: %s", e)


class Neo4jGraphStore:
    """
    GraphStore backed by a shared ``Neo4jHandler``.

    The handler's lifecycle (connect/close) stays with the caller.
    """

    def __init__(self, handler: Neo4jHandler):
        self._handler = handler

    async def begin_transaction(self) -> Neo4jGraphTransaction:
        try:
            tx = await self._handler.begin_transaction()
        except (Neo4jError, DriverError) as e:
            raise StoreError(f"Cannot begin transaction: {e}") from e
        return Neo4jGraphTransaction(tx)

    async def ensure_schema(self) -> None:
        """Create the node uniqueness constraint and edge index if they don't exist."""
        for stmt in SCHEMA_STATEMENTS:
            try:
                await self._handler.write(stmt)
            except (Neo4jError, DriverError) as e:
                raise StoreError(f"Schema statement failed ({stmt}): {e}") from e
        logger.info("Neo4j schema ensured")

    async def verify(self) -> bool:
        return await self._handler.verify()
