"""Prometheus metrics for a single orphan-finder run.

The tool is a batch job, so metrics live in a dedicated registry that is
written out once in the node-exporter textfile format instead of being
scraped.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import time
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, write_to_textfile


if TYPE_CHECKING:
    from collections.abc import Generator


REGISTRY = CollectorRegistry()

DOCUMENTS_INDEXED = Counter(
    "orphan_finder_documents_indexed_total",
    "Corpus documents added to the index",
    registry=REGISTRY,
)

DOCUMENTS_SKIPPED = Counter(
    "orphan_finder_documents_skipped_total",
    "Corpus documents excluded from the index because they could not be read",
    registry=REGISTRY,
)

INDEX_DOCUMENT_COUNT = Gauge(
    "orphan_finder_index_documents",
    "Documents in the active index",
    registry=REGISTRY,
)

CANDIDATES_CLASSIFIED = Counter(
    "orphan_finder_candidates_total",
    "Candidate files classified",
    ["classification"],
    registry=REGISTRY,
)

ORPHANS_DELETED = Counter(
    "orphan_finder_orphans_deleted_total",
    "Orphaned files removed from disk",
    registry=REGISTRY,
)

DELETION_FAILURES = Counter(
    "orphan_finder_deletion_failures_total",
    "Orphaned files that could not be removed",
    registry=REGISTRY,
)

PHRASE_QUERY_LATENCY = Histogram(
    "orphan_finder_phrase_query_seconds",
    "Phrase query latency",
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5),
    registry=REGISTRY,
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        target = histogram.labels(**labels) if labels else histogram
        target.observe(time.perf_counter() - start)


def write_metrics_file(path: str | Path) -> Path:
    """Atomically write the run's metrics to ``path``."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(target), REGISTRY)
    return target
