"""OpenTelemetry tracing for the build and scan phases."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import SpanKind, Status, StatusCode


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "orphan-finder"

_tracer_holder: dict[str, Any] = {"tracer": None, "provider": None}


def init_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Initialize OpenTelemetry tracing and make it the active tracer."""
    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    provider = TracerProvider(resource=Resource.create(attributes))
    trace.set_tracer_provider(provider)
    _tracer_holder["provider"] = provider
    _tracer_holder["tracer"] = provider.get_tracer(__name__)
    logger.debug("Tracing initialized for service: %s", service_name)
    return provider


def configure_trace_exporter(
    endpoint: str,
    provider: TracerProvider | None = None,
    *,
    timeout_seconds: int = 10,
) -> bool:
    """Export spans over OTLP/HTTP to ``endpoint``. Returns False when nothing was configured."""
    if not endpoint:
        return False

    active_provider = provider or _tracer_holder.get("provider")
    if not isinstance(active_provider, TracerProvider):
        active_provider = init_tracing()

    try:
        exporter = OTLPSpanExporter(endpoint=endpoint, timeout=timeout_seconds)
    except Exception as exc:
        logger.error("Failed to configure OTLP exporter: %s", exc, exc_info=True)
        return False

    active_provider.add_span_processor(BatchSpanProcessor(exporter))
    logger.info("OTLP trace export enabled to %s", endpoint)
    return True


def shutdown_tracing() -> None:
    """Flush pending spans and release the active provider."""
    provider = _tracer_holder.get("provider")
    if isinstance(provider, TracerProvider):
        provider.shutdown()
    _tracer_holder["provider"] = None
    _tracer_holder["tracer"] = None


def get_tracer() -> Tracer:
    """Get the configured tracer, initializing tracing on first use."""
    if _tracer_holder["tracer"] is None:
        init_tracing()
    return _tracer_holder["tracer"]


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a traced span with context propagation."""
    tracer = get_tracer()
    with tracer.start_as_current_span(name, kind=kind, record_exception=False, set_status_on_exception=False) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
