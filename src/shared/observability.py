"""
Langfuse / OpenTelemetry tracing.

Spans are only recorded when LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY
are provided in the environment (or .env). Otherwise every hook here is
a pass-through.
"""

import os
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from fastapi import Request, Response
from langfuse import Langfuse
from opentelemetry import trace
from opentelemetry.trace import Span, TracerProvider
from starlette.middleware.base import BaseHTTPMiddleware

from src.shared.logging import setup_logging

logger = setup_logging("shared.observability", level="INFO")

TRACER_NAME = "depgraph"

# Global Langfuse client
_langfuse_client: Optional[Langfuse] = None
_tracing_enabled: bool = False

# None means the globally registered provider (Langfuse installs its own)
_tracer_provider: Optional[TracerProvider] = None


def init_tracing() -> Optional[Langfuse]:
    """
    Initialize the Langfuse client if its keys are set.

    Environment variables:
    - LANGFUSE_PUBLIC_KEY
    - LANGFUSE_SECRET_KEY
    - LANGFUSE_HOST (optional, defaults to https://cloud.langfuse.com)

    Returns:
        The Langfuse client if tracing was enabled, None otherwise.
    """
    global _langfuse_client, _tracing_enabled

    public_key = os.getenv("LANGFUSE_PUBLIC_KEY")
    secret_key = os.getenv("LANGFUSE_SECRET_KEY")
    host = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

    if not public_key or not secret_key:
        logger.info("Langfuse not configured - tracing disabled")
        _tracing_enabled = False
        return None

    try:
        _langfuse_client = Langfuse(
            public_key=public_key,
            secret_key=secret_key,
            host=host,
        )
    except Exception as e:
        logger.error("Failed to initialize Langfuse: %s", e)
        _tracing_enabled = False
        return None

    _tracing_enabled = True
    logger.info("Langfuse initialized - host: %s", host)
    return _langfuse_client


def is_tracing_enabled() -> bool:
    return _tracing_enabled


def shutdown_tracing():
    """Flush pending spans and drop the client."""
    global _langfuse_client, _tracing_enabled

    _tracing_enabled = False
    if _langfuse_client:
        logger.info("Shutting down Langfuse - flushing pending traces")
        try:
            _langfuse_client.flush()
        except Exception as e:
            logger.error("Error flushing Langfuse: %s", e)
        finally:
            _langfuse_client = None


def _get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME, tracer_provider=_tracer_provider)


@contextmanager
def trace_span(name: str, **attributes) -> Iterator[Optional[Span]]:
    """
    Run a block inside a span; yields None when tracing is disabled.

    Exceptions raised in the block are recorded on the span and re-raised.

    Usage:
        with trace_span("depgraph.materialize", **{"depgraph.run_id": run_id}) as span:
            ...
    """
    if not is_tracing_enabled():
        yield None
        return

    with _get_tracer().start_as_current_span(name, attributes=attributes) as span:
        yield span


class TracingMiddleware(BaseHTTPMiddleware):
    """Wraps every HTTP request in a span named ``"<METHOD> <path>"``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not is_tracing_enabled():
            return await call_next(request)

        method = request.method
        path = request.url.path

        with trace_span(
            f"{method} {path}",
            **{"http.method": method, "http.target": path},
        ) as span:
            response = await call_next(request)
            span.set_attribute("http.status_code", response.status_code)
            return response
