"""
Custom exception hierarchy for the dependency graph services.

All errors inherit from DepGraphError so they can be caught
uniformly at the CLI or gateway level.
"""


class DepGraphError(Exception):
    """Base exception for all dependency graph errors."""

    def __init__(self, message: str, component: str = "unknown"):
        self.component = component
        super().__init__(f"[{component}] {message}")


class ManifestDecodeError(DepGraphError):
    """The dependency report could not be decoded into a manifest."""

    def __init__(self, message: str):
        super().__init__(message, component="report")


class StoreError(DepGraphError):
    """Any failure reported by the graph store."""

    def __init__(self, message: str):
        super().__init__(message, component="store")


class DatabaseConnectionError(StoreError):
    """Failed to connect to Neo4j."""
    pass


class MaterializationError(StoreError):
    """
    A store statement failed while applying a manifest.

    The transaction has already been aborted when this is raised.
    ``operation`` describes the node or edge upsert that failed and the
    underlying StoreError is chained as ``__cause__``.
    """

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        DepGraphError.__init__(self, message, component="materializer")


class TraversalError(DepGraphError):
    """The dependency tree cannot be walked safely."""

    def __init__(self, message: str):
        super().__init__(message, component="traversal")


class TraversalDepthError(TraversalError):
    """The dependency tree is deeper than the configured bound."""

    def __init__(self, depth: int, limit: int, name: str):
        self.depth = depth
        self.limit = limit
        super().__init__(
            f"Dependency '{name}' at depth {depth} exceeds max depth {limit}"
        )
