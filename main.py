"""
Entry point — materializes one Gradle dependency report into Neo4j.

Connection details come from the environment / .env
(NEO4J_URI, NEO4J_USERNAME, NEO4J_PASSWORD, NEO4J_DATABASE).
Set LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY to trace runs.

Usage:
    python main.py build/reports/dependencies.json
    python main.py build/reports/dependencies.json --dry-run

For HTTP mode:
    python -m src.gateway.app
"""

import argparse
import asyncio
import sys

from src.depgraph.ingest import ingest_report
from src.shared.config import BaseServiceSettings
from src.shared.exceptions import DepGraphError
from src.shared.logging import setup_logging
from src.shared.observability import init_tracing, shutdown_tracing


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load a Gradle dependency report into Neo4j")
    parser.add_argument("report", help="Path to the JSON dependency report")
    parser.add_argument(
        "--dry-run", action="store_true", help="Decode and plan only, write nothing"
    )
    args = parser.parse_args(argv)

    settings = BaseServiceSettings()
    logger = setup_logging("depgraph.main", level=settings.log_level)

    init_tracing()
    try:
        summary = await ingest_report(args.report, settings=settings, dry_run=args.dry_run)
    except (DepGraphError, ValueError) as e:
        logger.error("Ingestion failed: %s", e)
        return 1
    finally:
        shutdown_tracing()

    print("Ingestion complete:", summary.to_dict())
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
