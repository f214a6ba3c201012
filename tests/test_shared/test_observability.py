"""
Unit tests for opt-in tracing.

Spans are exported to an in-memory exporter; Langfuse itself is mocked.
Run with: pytest tests/test_shared/test_observability.py -v
"""

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from unittest.mock import patch

from src.depgraph.materializer import materialize
from src.depgraph.memory_store import InMemoryGraphStore
from src.depgraph.report import parse_report
from src.gateway.app import create_app
from src.gateway.config import GatewaySettings
from src.shared import observability
from src.shared.exceptions import MaterializationError


@pytest.fixture
def exporter(monkeypatch) -> InMemorySpanExporter:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(observability, "_tracer_provider", provider)
    monkeypatch.setattr(observability, "_tracing_enabled", False)
    monkeypatch.setattr(observability, "_langfuse_client", None)
    return exporter


@pytest.fixture
def tracing(monkeypatch, exporter) -> InMemorySpanExporter:
    monkeypatch.setattr(observability, "_tracing_enabled", True)
    return exporter


def _spans(exporter: InMemorySpanExporter, name: str) -> list:
    return [s for s in exporter.get_finished_spans() if s.name == name]


class TestInit:
    def test_disabled_without_keys(self, exporter, monkeypatch):
        monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)
        monkeypatch.delenv("LANGFUSE_SECRET_KEY", raising=False)

        assert observability.init_tracing() is None
        assert not observability.is_tracing_enabled()

    def test_enabled_with_keys(self, exporter, monkeypatch):
        monkeypatch.setenv("LANGFUSE_PUBLIC_KEY", "pk-test")
        monkeypatch.setenv("LANGFUSE_SECRET_KEY", "sk-test")
        monkeypatch.delenv("LANGFUSE_HOST", raising=False)

        with patch("src.shared.observability.Langfuse") as langfuse_cls:
            client = observability.init_tracing()

        langfuse_cls.assert_called_once_with(
            public_key="pk-test",
            secret_key="sk-test",
            host="https://cloud.langfuse.com",
        )
        assert client is langfuse_cls.return_value
        assert observability.is_tracing_enabled()

        observability.shutdown_tracing()

        client.flush.assert_called_once()
        assert not observability.is_tracing_enabled()


class TestMaterializeSpan:
    async def test_span_tagged_with_run(self, tracing, example_report):
        summary = await materialize(parse_report(example_report), InMemoryGraphStore())

        (span,) = _spans(tracing, "depgraph.materialize")
        assert span.attributes["depgraph.run_id"] == summary.run_id
        assert span.attributes["depgraph.project"] == "app:1.0"
        assert span.attributes["depgraph.statements"] == 7

    async def test_failure_marks_span(self, tracing, example_report):
        with pytest.raises(MaterializationError):
            await materialize(parse_report(example_report), InMemoryGraphStore(fail_on=3))

        (span,) = _spans(tracing, "depgraph.materialize")
        assert span.status.status_code == StatusCode.ERROR
        assert span.attributes["depgraph.project"] == "app:1.0"

    async def test_no_span_when_disabled(self, exporter, example_report):
        await materialize(parse_report(example_report), InMemoryGraphStore())

        assert exporter.get_finished_spans() == ()


class TestTracingMiddleware:
    def _client(self) -> TestClient:
        app = create_app(GatewaySettings(), use_lifespan=False)
        app.state.graph_store = InMemoryGraphStore()
        return TestClient(app)

    def test_request_span(self, tracing, example_report):
        response = self._client().post("/api/manifests", json=example_report)

        assert response.status_code == 200
        (span,) = _spans(tracing, "POST /api/manifests")
        assert span.attributes["http.method"] == "POST"
        assert span.attributes["http.status_code"] == 200
        assert len(_spans(tracing, "depgraph.materialize")) == 1

    def test_pass_through_when_disabled(self, exporter):
        response = self._client().get("/api/health")

        assert response.status_code == 200
        assert exporter.get_finished_spans() == ()
