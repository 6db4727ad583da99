"""Observability module: structured logging, OpenTelemetry tracing and Prometheus metrics."""

from orphan_finder.observability.context import get_trace_context
from orphan_finder.observability.logging import JsonFormatter, configure_logging
from orphan_finder.observability.metrics import (
    CANDIDATES_CLASSIFIED,
    DELETION_FAILURES,
    DOCUMENTS_INDEXED,
    DOCUMENTS_SKIPPED,
    INDEX_DOCUMENT_COUNT,
    ORPHANS_DELETED,
    PHRASE_QUERY_LATENCY,
    track_latency,
    write_metrics_file,
)
from orphan_finder.observability.tracing import (
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
    shutdown_tracing,
)


__all__ = [
    "CANDIDATES_CLASSIFIED",
    "DELETION_FAILURES",
    "DOCUMENTS_INDEXED",
    "DOCUMENTS_SKIPPED",
    "INDEX_DOCUMENT_COUNT",
    "ORPHANS_DELETED",
    "PHRASE_QUERY_LATENCY",
    "JsonFormatter",
    "configure_logging",
    "configure_trace_exporter",
    "create_span",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "shutdown_tracing",
    "track_latency",
    "write_metrics_file",
]
