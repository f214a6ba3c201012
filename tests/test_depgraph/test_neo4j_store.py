"""
Unit tests for the Neo4j adapter and connection handler.

The driver is mocked; no database is required.
Run with: pytest tests/test_depgraph/test_neo4j_store.py -v
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from neo4j.exceptions import ServiceUnavailable, SessionExpired

from src.depgraph.materializer import materialize
from src.depgraph.report import parse_report
from src.depgraph.store import (
    ADD_EDGE_CONFIG_CYPHER,
    ENSURE_EDGE_CYPHER,
    OP_ADD_EDGE_CONFIG,
    OP_ENSURE_EDGE,
    OP_UPSERT_NODE,
    SCHEMA_STATEMENTS,
    UPSERT_NODE_CYPHER,
    Neo4jGraphStore,
    Neo4jGraphTransaction,
    edge_upsert_queries,
    node_upsert_queries,
)
from src.shared.config import BaseServiceSettings
from src.shared.database import Neo4jHandler, Neo4jTransaction
from src.shared.exceptions import MaterializationError, StoreError


def _mock_tx() -> AsyncMock:
    tx = AsyncMock(spec=Neo4jTransaction)
    tx.run.return_value = []
    return tx


def _mock_handler(tx: AsyncMock) -> MagicMock:
    handler = MagicMock(spec=Neo4jHandler)
    handler.begin_transaction = AsyncMock(return_value=tx)
    handler.write = AsyncMock()
    handler.verify = AsyncMock(return_value=True)
    return handler


# ─── Statements ──────────────────────────────────────────────


class TestStatements:
    def test_node_upsert_is_merge(self):
        (query,) = node_upsert_queries("lib-a")

        assert query.operation == OP_UPSERT_NODE
        assert query.cypher == UPSERT_NODE_CYPHER
        assert query.cypher.startswith("MERGE")
        assert query.params == {"name": "lib-a"}

    def test_edge_upsert_two_steps(self):
        ensure, add = edge_upsert_queries("app:1.0", "lib-a", "app:1.0", "compile")

        assert ensure.operation == OP_ENSURE_EDGE
        assert ensure.cypher == ENSURE_EDGE_CYPHER
        assert "MERGE (a)-[r:DependsOn {project: $project}]->(b)" in ensure.cypher
        assert ensure.params == {"source": "app:1.0", "target": "lib-a", "project": "app:1.0"}

        assert add.operation == OP_ADD_EDGE_CONFIG
        assert add.cypher == ADD_EDGE_CONFIG_CYPHER
        assert "NOT $config IN r.config" in add.cypher
        assert "coalesce(r.config, [])" in add.cypher
        assert add.params["config"] == "compile"


# ─── Neo4jGraphStore ─────────────────────────────────────────


class TestNeo4jGraphStore:
    async def test_materialize_runs_statements_and_commits(self, example_report):
        tx = _mock_tx()
        store = Neo4jGraphStore(_mock_handler(tx))

        await materialize(parse_report(example_report), store)

        cyphers = [c.args[0] for c in tx.run.await_args_list]
        assert cyphers == [
            UPSERT_NODE_CYPHER,
            UPSERT_NODE_CYPHER,
            ENSURE_EDGE_CYPHER,
            ADD_EDGE_CONFIG_CYPHER,
            UPSERT_NODE_CYPHER,
            ENSURE_EDGE_CYPHER,
            ADD_EDGE_CONFIG_CYPHER,
        ]
        assert tx.run.await_args_list[0].args[1] == {"name": "app:1.0"}
        tx.commit.assert_awaited_once()
        tx.rollback.assert_not_awaited()

    async def test_driver_error_rolls_back(self, example_report):
        tx = _mock_tx()
        tx.run.side_effect = [[], ServiceUnavailable("connection lost")]
        store = Neo4jGraphStore(_mock_handler(tx))

        with pytest.raises(MaterializationError) as exc_info:
            await materialize(parse_report(example_report), store)

        assert exc_info.value.operation == "UpsertNode(lib-a)"
        assert "connection lost" in str(exc_info.value)
        tx.rollback.assert_awaited_once()
        tx.commit.assert_not_awaited()

    async def test_commit_error_translated(self, example_report):
        tx = _mock_tx()
        tx.commit.side_effect = SessionExpired("expired")
        store = Neo4jGraphStore(_mock_handler(tx))

        with pytest.raises(MaterializationError) as exc_info:
            await materialize(parse_report(example_report), store)

        assert exc_info.value.operation == "Commit"
        tx.rollback.assert_awaited_once()

    async def test_begin_error_translated(self):
        handler = _mock_handler(_mock_tx())
        handler.begin_transaction.side_effect = ServiceUnavailable("down")

        with pytest.raises(StoreError, match="Cannot begin transaction"):
            await Neo4jGraphStore(handler).begin_transaction()

    async def test_rollback_error_is_logged_not_raised(self, caplog):
        tx = _mock_tx()
        tx.rollback.side_effect = ServiceUnavailable("gone")

        with caplog.at_level("WARNING", logger="depgraph.store"):
            await Neo4jGraphTransaction(tx).abort()

        assert "transaction left to expire: gone" in caplog.text

    async def test_ensure_schema(self):
        handler = _mock_handler(_mock_tx())

        await Neo4jGraphStore(handler).ensure_schema()

        assert [c.args[0] for c in handler.write.await_args_list] == SCHEMA_STATEMENTS

    async def test_ensure_schema_failure(self):
        handler = _mock_handler(_mock_tx())
        handler.write.side_effect = ServiceUnavailable("down")

        with pytest.raises(StoreError, match="Schema statement failed"):
            await Neo4jGraphStore(handler).ensure_schema()

    async def test_verify_delegates_to_handler(self):
        handler = _mock_handler(_mock_tx())
        handler.verify.return_value = False

        assert await Neo4jGraphStore(handler).verify() is False
        handler.verify.assert_awaited_once()


# ─── Neo4jTransaction / Neo4jHandler ─────────────────────────


class TestNeo4jTransaction:
    def _session_and_tx(self, closed: bool = False):
        session = AsyncMock()
        tx = AsyncMock()
        tx.closed = MagicMock(return_value=closed)
        return session, tx

    async def test_commit_closes_session(self):
        session, tx = self._session_and_tx()

        await Neo4jTransaction(session, tx).commit()

        tx.commit.assert_awaited_once()
        session.close.assert_awaited_once()

    async def test_failed_commit_still_closes_session(self):
        session, tx = self._session_and_tx()
        tx.commit.side_effect = SessionExpired("expired")

        with pytest.raises(SessionExpired):
            await Neo4jTransaction(session, tx).commit()
        session.close.assert_awaited_once()

    async def test_rollback_skipped_when_closed(self):
        session, tx = self._session_and_tx(closed=True)

        await Neo4jTransaction(session, tx).rollback()

        tx.rollback.assert_not_awaited()
        session.close.assert_awaited_once()


class TestNeo4jHandler:
    def test_requires_uri(self, monkeypatch):
        monkeypatch.delenv("NEO4J_URI", raising=False)
        with pytest.raises(ValueError, match="NEO4J_URI"):
            Neo4jHandler(username="neo4j", password="secret")

    def test_from_settings(self):
        settings = BaseServiceSettings(
            neo4j_uri="bolt://graph:7687",
            neo4j_username="neo4j",
            neo4j_password="secret",
            neo4j_database="deps",
            transaction_timeout=30.0,
        )
        handler = Neo4jHandler.from_settings(settings)

        assert handler.uri == "bolt://graph:7687"
        assert handler.database == "deps"

    def test_driver_requires_connect(self):
        handler = Neo4jHandler(uri="bolt://graph:7687", username="neo4j", password="secret")
        with pytest.raises(RuntimeError, match="not connected"):
            handler.driver

    async def test_verify_without_driver(self):
        handler = Neo4jHandler(uri="bolt://graph:7687", username="neo4j", password="secret")
        assert await handler.verify() is False
