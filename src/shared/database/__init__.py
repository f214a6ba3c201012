"""
Database package — centralised connection handlers.
"""

from .neo4j_handler import Neo4jHandler, Neo4jTransaction

__all__ = ["Neo4jHandler", "Neo4jTransaction"]
