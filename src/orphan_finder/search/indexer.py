"""Corpus indexing for orphan detection.

The indexer drives the build phase: it enumerates corpus documents, feeds them
to the :class:`DocumentStore` one at a time, and builds the
:class:`InvertedIndex` only after ingestion has finished. When an index
location is configured the result is persisted, and later runs can load it
instead of rebuilding.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Literal

from orphan_finder.errors import IngestError
from orphan_finder.observability.metrics import DOCUMENTS_INDEXED, DOCUMENTS_SKIPPED, INDEX_DOCUMENT_COUNT
from orphan_finder.observability.tracing import create_span
from orphan_finder.search.analyzers import Analyzer, StandardAnalyzer
from orphan_finder.search.inverted_index import InvertedIndex
from orphan_finder.search.sqlite_storage import SqliteIndexStore
from orphan_finder.search.storage import DocumentStore
from orphan_finder.sources import DEFAULT_SKIP_DIRS, CorpusFile, iter_corpus_documents, read_document


logger = logging.getLogger(__name__)

IngestPolicy = Literal["fail", "skip"]


@dataclass(frozen=True)
class CorpusIndexingContext:
    """Immutable context describing how to index one corpus."""

    corpus_root: Path
    exclude_root: Path | None = None
    extensions: tuple[str, ...] = (".md",)
    skip_dirs: frozenset[str] = DEFAULT_SKIP_DIRS
    on_ingest_error: IngestPolicy = "fail"


@dataclass(frozen=True)
class IndexBuildResult:
    """Outcome of a build phase."""

    index: InvertedIndex
    documents_indexed: int
    documents_skipped: int
    directories_skipped: int = 0
    errors: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ResolvedIndex:
    """The index a run queries, and where it came from."""

    index: InvertedIndex
    origin: Literal["built", "loaded"]
    build_result: IndexBuildResult | None = None


class CorpusIndexer:
    """Builds the inverted index for one corpus."""

    def __init__(self, context: CorpusIndexingContext, *, analyzer: Analyzer | None = None) -> None:
        self.context = context
        self.analyzer = analyzer or StandardAnalyzer()

    def build(self, documents: Iterable[CorpusFile] | None = None) -> IndexBuildResult:
        """Ingest every corpus document, then build the index in one pass.

        Args:
            documents: Documents to ingest. Defaults to enumerating the corpus root.

        Raises:
            IngestError: a document or directory could not be read and the policy is ``"fail"``.
        """

        store = DocumentStore(self.analyzer)
        errors: list[str] = []
        documents_skipped = 0
        directories_skipped = 0

        def skip_directory(exc: IngestError) -> None:
            nonlocal directories_skipped
            if self.context.on_ingest_error == "fail":
                raise exc
            logger.warning("Excluding unreadable directory %s from the index: %s", exc.path, exc)
            errors.append(str(exc))
            directories_skipped += 1

        if documents is None:
            documents = iter_corpus_documents(
                self.context.corpus_root,
                exclude_root=self.context.exclude_root,
                extensions=self.context.extensions,
                skip_dirs=self.context.skip_dirs,
                on_error=skip_directory,
            )

        with create_span("index.build", attributes={"corpus.root": str(self.context.corpus_root)}) as span:
            for document in documents:
                try:
                    content = read_document(document.path)
                except IngestError as exc:
                    if self.context.on_ingest_error == "fail":
                        raise
                    logger.warning("Excluding %s from the index: %s", document.source_path, exc)
                    errors.append(str(exc))
                    documents_skipped += 1
                    DOCUMENTS_SKIPPED.inc()
                    continue
                store.add_document(document.source_path, content)
                DOCUMENTS_INDEXED.inc()

            index = InvertedIndex.build(store)
            span.set_attribute("index.documents", index.doc_count)
            span.set_attribute("index.terms", index.term_count)

        INDEX_DOCUMENT_COUNT.set(index.doc_count)
        logger.info(
            "Indexed %d documents (%d documents and %d directories skipped, %d distinct terms) from %s",
            index.doc_count,
            documents_skipped,
            directories_skipped,
            index.term_count,
            self.context.corpus_root,
        )
        return IndexBuildResult(
            index=index,
            documents_indexed=index.doc_count,
            documents_skipped=documents_skipped,
            directories_skipped=directories_skipped,
            errors=tuple(errors),
        )


def resolve_index(
    indexer: CorpusIndexer,
    store: SqliteIndexStore | None,
    *,
    rebuild: bool = False,
) -> ResolvedIndex:
    """Load the persisted index when possible, otherwise build (and persist) a fresh one.

    - no store: build in memory for this run only
    - store holding an index and ``rebuild`` unset: load it, skipping the build
    - otherwise: build, then save into the store
    """

    if store is not None and store.exists() and not rebuild:
        loaded = store.load()
        corpus_root = str(indexer.context.corpus_root)
        if loaded.corpus_root and loaded.corpus_root != corpus_root:
            logger.warning(
                "Index at %s was built for corpus %s, not %s; results reflect the indexed corpus",
                store.db_path,
                loaded.corpus_root,
                corpus_root,
            )
        INDEX_DOCUMENT_COUNT.set(loaded.index.doc_count)
        return ResolvedIndex(index=loaded.index, origin="loaded")

    result = indexer.build()
    if store is not None:
        store.save(result.index, corpus_root=indexer.context.corpus_root)
    return ResolvedIndex(index=result.index, origin="built", build_result=result)
