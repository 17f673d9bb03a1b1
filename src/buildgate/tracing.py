"""OpenTelemetry tracing for buildgate.

Every pipeline run gets a ``pipeline.run`` span and every step a child
``step.execute`` span, so a slow build or a flaky lint shows up in whatever
trace backend the CI environment exports to.

Usage:
    from buildgate.tracing import configure_tracing, trace_step

    configure_tracing(service_name="ci")

    with trace_step(run_id, "build") as span:
        span.set_attribute("step.returncode", 0)

Until configure_tracing() is called (or another TracerProvider is installed)
the OpenTelemetry API hands out non-recording spans, so tracing costs
nothing by default.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Status, StatusCode

INSTRUMENTATION_NAME = "buildgate"


def configure_tracing(
    service_name: str = "buildgate",
    service_version: str | None = None,
    environment: str | None = None,
) -> TracerProvider:
    """Install an SDK TracerProvider for buildgate.

    Exporters are attached separately by the caller:

        provider = configure_tracing(service_name="ci")
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))

    Args:
        service_name: Name of the service (appears in traces)
        service_version: Optional version string
        environment: Optional environment (dev, ci, ...)

    Returns:
        The installed provider
    """
    resource_attrs = {"service.name": service_name}
    if service_version:
        resource_attrs["service.version"] = service_version
    if environment:
        resource_attrs["deployment.environment"] = environment

    provider = TracerProvider(resource=Resource.create(resource_attrs))
    trace.set_tracer_provider(provider)
    return provider


def get_tracer() -> trace.Tracer:
    """Tracer from the globally installed provider (no-op until configured)."""
    return trace.get_tracer(INSTRUMENTATION_NAME)


@contextmanager
def trace_operation(name: str, **attributes: Any) -> Iterator[trace.Span]:
    """Context manager for tracing an operation.

    Sets the given attributes, records exceptions and marks the span as
    errored when one propagates.
    """
    with get_tracer().start_as_current_span(name, record_exception=False) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


@contextmanager
def trace_pipeline(run_id: str, tree: str, step_count: int) -> Iterator[trace.Span]:
    """Trace a whole pipeline run."""
    with trace_operation(
        "pipeline.run",
        run_id=run_id,
        tree=tree,
        step_count=step_count,
    ) as span:
        yield span


@contextmanager
def trace_step(run_id: str, step_name: str, kind: str = "command") -> Iterator[trace.Span]:
    """Trace a single step."""
    with trace_operation(
        "step.execute",
        run_id=run_id,
        step_name=step_name,
        step_kind=kind,
    ) as span:
        yield span


def mark_failed(span: trace.Span, reason: str) -> None:
    """Flag a span as errored without an exception (a step that said no)."""
    span.set_status(Status(StatusCode.ERROR, reason))
