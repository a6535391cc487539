import logging
import os

import pytest
from opentelemetry.sdk.trace.export import SpanExportResult

from tracekit_core.logging import create_null_logger
from tracekit_core.models.config import TraceKitConfig
from tracekit_core.tracing.client import Tracer
from tracekit_core.tracing.registry import clear_current_instance
from tracekit_core.tracing.transport import Transport


class RecordingTransport(Transport):
    """Transport keeping every payload it receives."""

    def __init__(self, result: SpanExportResult = SpanExportResult.SUCCESS):
        self.payloads: list[dict] = []
        self.result = result
        self.shutdown_called = False

    def send(self, payload: dict) -> SpanExportResult:
        self.payloads.append(payload)
        return self.result

    def shutdown(self) -> None:
        self.shutdown_called = True


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Run every test without TRACEKIT_* variables, .env file or current tracer."""
    for key in list(os.environ):
        if key.upper().startswith('TRACEKIT_'):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_current_instance()
    yield
    clear_current_instance()


@pytest.fixture
def null_logger() -> logging.Logger:
    return create_null_logger('tracekit.tests')


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_tracer(transport, null_logger):
    """Factory building tracers with a recording transport."""

    def factory(**options) -> Tracer:
        options.setdefault('api_key', 'test-key')
        return Tracer(
            config=TraceKitConfig.resolve(options),
            transport=transport,
            logger=null_logger,
        )

    return factory


@pytest.fixture
def tracer(make_tracer) -> Tracer:
    return make_tracer()
