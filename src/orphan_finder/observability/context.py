"""Trace identifiers for log correlation, read from the active OpenTelemetry span.

OpenTelemetry keeps the current span in a ``contextvars`` context, which
``asyncio.to_thread`` copies into worker threads, so log records emitted while
classifying candidates carry the ids of the enclosing ``orphans.scan`` span.
"""

from __future__ import annotations

from opentelemetry import trace


def get_trace_context() -> dict[str, str]:
    """Return hex ``trace_id``/``span_id`` of the current span, empty outside any span."""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {"trace_id": "", "span_id": ""}
    return {
        "trace_id": format(span_context.trace_id, "032x"),
        "span_id": format(span_context.span_id, "016x"),
    }
