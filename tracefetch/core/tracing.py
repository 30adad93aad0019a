"""OpenTelemetry tracing.

``configure_tracing`` builds the provider that forwards finished spans to
the configured sink. ``SpanTracer.start_span`` is the only way spans are
opened in this package: it is a context manager, so the span is ended
exactly once on every exit path.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Mapping

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

from tracefetch.config import Settings
from tracefetch.core.logging import get_logger

logger = get_logger(__name__)

SERVICE_VERSION = "1.0.0"


def configure_tracing(settings: Settings) -> TracerProvider:
    """Create the tracer provider for the app. Not installed globally."""
    resource = Resource.create(
        {
            "service.name": settings.SERVICE_NAME,
            "service.version": SERVICE_VERSION,
        }
    )
    provider = TracerProvider(resource=resource)

    exporter = settings.TRACING_EXPORTER.lower()
    if exporter == "console":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    elif exporter != "none":
        raise ValueError(f"unknown TRACING_EXPORTER: {settings.TRACING_EXPORTER!r}")

    logger.info("tracing_configured", service=settings.SERVICE_NAME, exporter=exporter)
    return provider


class Span:
    """Handle on one open span. Writes after ``finish`` are ignored and logged."""

    def __init__(self, name: str, otel_span: trace.Span) -> None:
        self.name = name
        self._span = otel_span
        self._finished = False
        self._failed = False

    @property
    def finished(self) -> bool:
        return self._finished

    def set_attribute(self, key: str, value: object) -> None:
        if self._finished:
            logger.warning("span_misuse", span=self.name, op="set_attribute", key=key)
            return
        self._span.set_attribute(key, str(value))

    def fail(self, error: BaseException) -> None:
        if self._finished:
            logger.warning("span_misuse", span=self.name, op="fail")
            return
        self._failed = True
        self._span.record_exception(error)
        self._span.set_status(Status(StatusCode.ERROR, f"{type(error).__name__}: {error}"))

    def finish(self) -> None:
        if self._finished:
            logger.warning("span_misuse", span=self.name, op="finish")
            return
        if not self._failed:
            self._span.set_status(Status(StatusCode.OK))
        self._finished = True
        self._span.end()


class SpanTracer:
    def __init__(
        self,
        tracer_provider: trace.TracerProvider | None = None,
        instrumentation_name: str = "tracefetch",
    ) -> None:
        self._tracer = trace.get_tracer(instrumentation_name, tracer_provider=tracer_provider)

    @contextmanager
    def start_span(
        self,
        name: str,
        attributes: Mapping[str, object] | None = None,
    ) -> Iterator[Span]:
        otel_span = self._tracer.start_span(
            name,
            attributes={key: str(value) for key, value in (attributes or {}).items()},
        )
        span = Span(name, otel_span)
        try:
            with trace.use_span(
                otel_span,
                end_on_exit=False,
                record_exception=False,
                set_status_on_exception=False,
            ):
                yield span
        except BaseException as exc:
            span.fail(exc)
            raise
        finally:
            span.finish()
