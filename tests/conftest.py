from __future__ import annotations

import httpx
import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from tracefetch.config import Settings
from tracefetch.core.tracing import SpanTracer


class Script:
    """Upstream stand-in: hands out queued responses or raises queued errors, in order."""

    def __init__(self, *outcomes: httpx.Response | BaseException) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def sends(self) -> int:
        return len(self.requests)


@pytest.fixture(autouse=True)
def _quiet_tracing(monkeypatch):
    monkeypatch.setenv("TRACING_EXPORTER", "none")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        USERS_BASE_URL="http://users.test",
        MAX_RETRIES=3,
        BACKOFF_SECONDS=0.0,
        TRACING_EXPORTER="none",
    )


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter) -> SpanTracer:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return SpanTracer(provider)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def recording_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def script_cls() -> type[Script]:
    return Script
