"""Append-only document store feeding the inverted index.

Documents are tokenized on ingestion and kept as immutable term tuples keyed
by a dense, sequential integer id. The store does no I/O: callers read the
file and hand over its text, so read failures surface from the source layer.
"""

from __future__ import annotations

from collections.abc import Iterator
import logging

from orphan_finder.search.analyzers import Analyzer, StandardAnalyzer
from orphan_finder.search.models import Document


logger = logging.getLogger(__name__)


class StorageError(ValueError):
    """Raised when invalid documents or operations are encountered."""


class DocumentStore:
    """Holds ingested documents in id order."""

    def __init__(self, analyzer: Analyzer | None = None) -> None:
        self.analyzer = analyzer or StandardAnalyzer()
        self._documents: list[Document] = []
        self._sources: set[str] = set()

    def add_document(self, source_path: str, content: str) -> int:
        """Tokenize ``content`` and store it under the next free id."""

        if source_path in self._sources:
            msg = f"Duplicate document for source path: {source_path}"
            raise StorageError(msg)

        document_id = len(self._documents)
        terms = tuple(token.text for token in self.analyzer.stream(content))
        self._documents.append(Document(id=document_id, source_path=source_path, terms=terms))
        self._sources.add(source_path)
        logger.debug("Stored document %d (%d terms): %s", document_id, len(terms), source_path)
        return document_id

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)
