"""
Logging setup shared by the ingestion CLI and the gateway.

Every materialization run is tagged with a correlation ID so that
the statements of one transaction can be followed in the logs.
"""

import logging
import uuid


def setup_logging(name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure logging for a service component.

    Args:
        name: Logger name (e.g. 'depgraph.gateway').
        level: Log level string (e.g. 'INFO', 'DEBUG').

    Returns:
        Configured logger instance.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )
    return logging.getLogger(name)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for one materialization run."""
    return uuid.uuid4().hex[:12]
