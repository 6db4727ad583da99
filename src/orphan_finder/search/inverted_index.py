"""Positional inverted index.

The index maps every term to its posting list, ordered by
``(document_id, position)``. Building from a :class:`DocumentStore` visits
documents in id order and terms left to right, so lists come out sorted
without an explicit sort step. Indexes assembled from other sources (for
example rows loaded from SQLite) go through :meth:`InvertedIndex.from_postings`,
which sorts any list that is not already ordered.

Once built the index is never mutated, which makes concurrent reads safe.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping, Sequence
import logging
from types import MappingProxyType

from orphan_finder.search.models import Posting
from orphan_finder.search.storage import DocumentStore


logger = logging.getLogger(__name__)

_EMPTY: tuple[Posting, ...] = ()


class InvertedIndex:
    """Read-only term -> postings mapping with per-document source paths."""

    __slots__ = ("_postings", "_sources")

    def __init__(
        self,
        postings: Mapping[str, tuple[Posting, ...]],
        sources: Sequence[str],
    ) -> None:
        self._postings = MappingProxyType(dict(postings))
        self._sources = tuple(sources)

    @classmethod
    def build(cls, document_store: DocumentStore) -> InvertedIndex:
        """Build the index in a single ordered pass over the store."""

        postings: defaultdict[str, list[Posting]] = defaultdict(list)
        sources: list[str] = []
        for document in document_store:
            sources.append(document.source_path)
            for position, term in enumerate(document.terms):
                postings[term].append(Posting(document.id, position))

        logger.debug("Built inverted index: %d documents, %d terms", len(sources), len(postings))
        return cls({term: tuple(entries) for term, entries in postings.items()}, sources)

    @classmethod
    def from_postings(
        cls,
        postings: Mapping[str, Iterable[Posting]],
        sources: Sequence[str],
    ) -> InvertedIndex:
        """Assemble an index from externally supplied postings.

        Posting lists that are out of order are sorted by
        ``(document_id, position)``; postings that point at unknown documents
        are rejected.
        """

        doc_count = len(sources)
        ordered: dict[str, tuple[Posting, ...]] = {}
        for term, entries in postings.items():
            entry_list = list(entries)
            if not _is_sorted(entry_list):
                entry_list.sort()
            for posting in entry_list:
                if not 0 <= posting.document_id < doc_count:
                    msg = f"Posting for term {term!r} references unknown document {posting.document_id}"
                    raise ValueError(msg)
            ordered[term] = tuple(entry_list)
        return cls(ordered, sources)

    def postings_for(self, term: str) -> tuple[Posting, ...]:
        """Return the ordered postings for ``term`` (empty when never indexed)."""

        return self._postings.get(term, _EMPTY)

    def __contains__(self, term: object) -> bool:
        return term in self._postings

    def items(self) -> Iterator[tuple[str, tuple[Posting, ...]]]:
        return iter(self._postings.items())

    def source_path(self, document_id: int) -> str:
        return self._sources[document_id]

    @property
    def sources(self) -> tuple[str, ...]:
        return self._sources

    @property
    def doc_count(self) -> int:
        return len(self._sources)

    @property
    def term_count(self) -> int:
        return len(self._postings)


def _is_sorted(entries: Sequence[Posting]) -> bool:
    return all(entries[idx] <= entries[idx + 1] for idx in range(len(entries) - 1))
