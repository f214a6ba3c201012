"""
Base configuration for the dependency graph services.

Uses Pydantic Settings for environment-based configuration.
Each entry point extends BaseServiceSettings with its own prefix.
"""

from pydantic_settings import BaseSettings


class BaseServiceSettings(BaseSettings):
    """Base settings shared by the ingestion CLI and the gateway."""

    service_name: str = "depgraph"

    # Neo4j connection
    neo4j_uri: str = ""
    neo4j_username: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"

    # Seconds; None leaves the server default in place
    transaction_timeout: float | None = None

    # Traversal guard; None means unbounded
    max_dependency_depth: int | None = None

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
