"""Classify candidate files as referenced or orphaned.

Each candidate's path relative to the candidate root is normalized, tokenized
with the same analyzer the corpus was indexed with, and looked up as an exact
phrase. Classification is pure and independent per candidate, so the scan can
fan out over worker threads; deletion happens afterwards, outside the query
engine.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
import logging

from orphan_finder.errors import ConfigurationError, DeletionError
from orphan_finder.filesystem import delete_orphans
from orphan_finder.observability.metrics import CANDIDATES_CLASSIFIED, PHRASE_QUERY_LATENCY, track_latency
from orphan_finder.observability.tracing import create_span
from orphan_finder.search.analyzers import Analyzer, PathAnalyzer, normalize_path, tokenize
from orphan_finder.search.phrase import PhraseQueryEngine
from orphan_finder.sources import Candidate


logger = logging.getLogger(__name__)


class Classification(str, Enum):
    REFERENCED = "referenced"
    ORPHANED = "orphaned"


@dataclass(frozen=True, slots=True)
class ClassifiedCandidate:
    candidate: Candidate
    classification: Classification

    @property
    def is_orphan(self) -> bool:
        return self.classification is Classification.ORPHANED


@dataclass(slots=True)
class OrphanReport:
    """Aggregated outcome of a scan."""

    examined: int
    orphans: tuple[Candidate, ...]
    dry_run: bool
    deleted: tuple[Candidate, ...] = ()
    deletion_errors: list[DeletionError] = field(default_factory=list)

    @property
    def orphan_count(self) -> int:
        return len(self.orphans)

    @property
    def summary(self) -> str:
        return f"Found {self.orphan_count} orphans from {self.examined}."


class OrphanDetector:
    """Runs candidate paths through the phrase query engine."""

    def __init__(self, engine: PhraseQueryEngine, analyzer: Analyzer | None = None) -> None:
        self.engine = engine
        self.analyzer = analyzer or PathAnalyzer()

    def phrase_for(self, relative_path: str) -> tuple[str, ...]:
        """Turn a candidate's relative path into its query phrase.

        Raises:
            ConfigurationError: the path normalizes to an empty phrase. Such a
                candidate would always look orphaned, so it is never guessed at.
        """

        normalized = normalize_path(relative_path)
        if not normalized:
            raise ConfigurationError(f"Candidate has an empty relative path: {relative_path!r}", path=relative_path)
        terms = tuple(tokenize(normalized, self.analyzer))
        if not terms:
            raise ConfigurationError(
                f"Candidate path has no searchable terms: {relative_path}",
                path=relative_path,
            )
        return terms

    def classify(self, relative_path: str) -> Classification:
        return self._classify_phrase(self.phrase_for(relative_path))

    def scan(self, candidates: Iterable[Candidate], *, max_parallel: int = 1) -> list[ClassifiedCandidate]:
        """Classify every candidate, preserving enumeration order.

        Phrases are derived for all candidates before any query runs, so an
        unusable path fails the scan before anything is classified.
        """

        work = [(candidate, self.phrase_for(candidate.relative_path)) for candidate in candidates]
        with create_span("orphans.scan", attributes={"candidates": len(work), "workers": max_parallel}):
            if max_parallel <= 1 or len(work) <= 1:
                classifications = [self._classify_phrase(phrase) for _, phrase in work]
            else:
                classifications = asyncio.run(self._classify_async(work, max_parallel))

        return [
            ClassifiedCandidate(candidate=candidate, classification=classification)
            for (candidate, _), classification in zip(work, classifications, strict=True)
        ]

    def find_orphans(
        self,
        candidates: Iterable[Candidate],
        *,
        dry_run: bool,
        max_parallel: int = 1,
    ) -> OrphanReport:
        """Scan candidates and, unless ``dry_run``, delete the orphans."""

        results = self.scan(candidates, max_parallel=max_parallel)
        orphans = tuple(result.candidate for result in results if result.is_orphan)
        report = OrphanReport(examined=len(results), orphans=orphans, dry_run=dry_run)
        if dry_run or not orphans:
            return report

        by_path = {orphan.path: orphan for orphan in orphans}
        outcome = delete_orphans(by_path)
        report.deleted = tuple(by_path[path] for path in outcome.deleted)
        report.deletion_errors = outcome.errors
        return report

    def _classify_phrase(self, phrase: Sequence[str]) -> Classification:
        explain = logger.isEnabledFor(logging.DEBUG)
        with track_latency(PHRASE_QUERY_LATENCY):
            result = self.engine.match(phrase, collect_all=explain)
        classification = Classification.REFERENCED if result else Classification.ORPHANED
        if explain and result:
            index = self.engine.index
            logger.debug(
                "Phrase %r referenced by %s",
                " ".join(phrase),
                ", ".join(index.source_path(document_id) for document_id in result.document_ids),
            )
        CANDIDATES_CLASSIFIED.labels(classification=classification.value).inc()
        return classification

    async def _classify_async(
        self,
        work: Sequence[tuple[Candidate, tuple[str, ...]]],
        max_parallel: int,
    ) -> list[Classification]:
        sem = asyncio.Semaphore(max_parallel)

        async def run_one(phrase: tuple[str, ...]) -> Classification:
            async with sem:
                return await asyncio.to_thread(self._classify_phrase, phrase)

        return await asyncio.gather(*(run_one(phrase) for _, phrase in work))
