"""
Neo4j Connection Handler

Centralised Neo4j driver management.
Reads credentials from arguments, settings or environment variables and
exposes an async driver plus explicit transactions for the graph store.
"""

import os
import logging
from typing import Any

from dotenv import load_dotenv
from neo4j import AsyncGraphDatabase, AsyncDriver, AsyncSession, AsyncTransaction
from neo4j.exceptions import DriverError, Neo4jError

from src.shared.config import BaseServiceSettings
from src.shared.exceptions import DatabaseConnectionError

load_dotenv()

logger = logging.getLogger("depgraph.neo4j_handler")


class Neo4jTransaction:
    """
    An explicit transaction bound to its own session.

    The session is closed once the transaction is committed or rolled back.
    """

    def __init__(self, session: AsyncSession, tx: AsyncTransaction):
        self._session = session
        self._tx = tx

    async def run(self, query: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Execute a Cypher statement inside the transaction and return all records."""
        result = await self._tx.run(query, params or {})
        return [record.data() async for record in result]

    async def commit(self) -> None:
        try:
            await self._tx.commit()
        finally:
            await self._session.close()

    async def rollback(self) -> None:
        """Roll back unless the transaction is already closed (e.g. a failed commit)."""
        try:
            if not self._tx.closed():
                await self._tx.rollback()
        finally:
            await self._session.close()


class Neo4jHandler:
    """
    Manages a single async Neo4j driver backed by settings or .env configuration.

    Usage
    -----
    handler = Neo4jHandler.from_settings(settings)
    await handler.connect()
    tx = await handler.begin_transaction()
    await tx.run("MERGE (n:PROJECT {name: $name})", {"name": "app:1.0"})
    await tx.commit()
    await handler.close()

    The handler can also be used as an async context-manager:

        async with Neo4jHandler() as handler:
            await handler.write(...)
    """

    def __init__(
        self,
        uri: str | None = None,
        username: str | None = None,
        password: str | None = None,
        database: str | None = None,
        transaction_timeout: float | None = None,
    ):
        self._uri = uri or os.getenv("NEO4J_URI")
        self._username = username or os.getenv("NEO4J_USERNAME")
        self._password = password or os.getenv("NEO4J_PASSWORD")
        self._database = database or os.getenv("NEO4J_DATABASE", "neo4j")
        self._transaction_timeout = transaction_timeout
        self._driver: AsyncDriver | None = None

        if not self._uri:
            raise ValueError("NEO4J_URI is not set (env or argument)")
        if not self._username:
            raise ValueError("NEO4J_USERNAME is not set (env or argument)")
        if not self._password:
            raise ValueError("NEO4J_PASSWORD is not set (env or argument)")

    @classmethod
    def from_settings(cls, settings: BaseServiceSettings) -> "Neo4jHandler":
        """Build a handler from service settings (empty values fall back to env)."""
        return cls(
            uri=settings.neo4j_uri or None,
            username=settings.neo4j_username or None,
            password=settings.neo4j_password or None,
            database=settings.neo4j_database or None,
            transaction_timeout=settings.transaction_timeout,
        )

    # ─── Lifecycle ──────────────────────────────────────────

    async def connect(self) -> "Neo4jHandler":
        """Create the async driver and verify connectivity.

        Returns:
            Self for method chaining.

        Raises:
            DatabaseConnectionError: If Neo4j connection cannot be established or verified.
        """
        if self._driver is not None:
            return self

        self._driver = AsyncGraphDatabase.driver(
            self._uri, auth=(self._username, self._password)
        )
        try:
            await self._driver.verify_connectivity()
            logger.info("Connected to Neo4j at %s (db=%s)", self._uri, self._database)
        except (DriverError, Neo4jError, OSError) as e:
            logger.error("Failed to connect to Neo4j at %s", self._uri)
            await self._driver.close()
            self._driver = None
            raise DatabaseConnectionError(f"Cannot reach Neo4j at {self._uri}: {e}") from e
        return self

    async def close(self) -> None:
        """Close the underlying driver."""
        if self._driver:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")

    async def __aenter__(self) -> "Neo4jHandler":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ─── Properties ─────────────────────────────────────────

    @property
    def driver(self) -> AsyncDriver:
        """Return the raw async driver (for code that needs direct access).

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
        """
        if self._driver is None:
            raise RuntimeError("Neo4jHandler is not connected — call connect() first")
        return self._driver

    @property
    def database(self) -> str:
        """Return the configured database name."""
        return self._database

    @property
    def uri(self) -> str:
        """Return the configured Neo4j URI."""
        return self._uri

    # ─── Transactions ───────────────────────────────────────

    async def begin_transaction(self) -> Neo4jTransaction:
        """Open a session and start an explicit transaction on it.

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
            neo4j.exceptions.DriverError: If the transaction cannot be started.
        """
        session = self.driver.session(database=self._database)
        try:
            tx = await session.begin_transaction(timeout=self._transaction_timeout)
        except BaseException:
            await session.close()
            raise
        return Neo4jTransaction(session, tx)

    async def write(self, query: str, params: dict[str, Any] | None = None) -> None:
        """Execute a single auto-commit write statement (schema setup and the like).

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
            neo4j.exceptions.Neo4jError: If the statement fails.
        """
        async with self.driver.session(database=self._database) as session:
            result = await session.run(query, params or {})
            await result.consume()

    async def verify(self) -> bool:
        """Quick health-check: returns True if the database is reachable."""
        if self._driver is None:
            return False
        try:
            await self._driver.verify_connectivity()
            return True
        except (DriverError, Neo4jError, OSError):
            return False
