"""Exact phrase matching over the positional inverted index.

A phrase matches a document when its terms occur there contiguously and in
order. Candidate documents come from the first term's postings; contiguity is
verified by checking that term ``i`` has a posting at ``start + i`` in the same
document. No fuzzy, prefix or proximity matching happens here.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from itertools import groupby
from operator import attrgetter

from orphan_finder.search.inverted_index import InvertedIndex
from orphan_finder.search.models import MatchResult, Posting


_NO_MATCH = MatchResult(matched=False)
_by_document = attrgetter("document_id")


def positions_by_document(postings: Sequence[Posting]) -> dict[int, frozenset[int]]:
    """Group an ordered posting list into ``document_id -> positions``.

    Runs in one linear pass because the list is sorted by document id.
    """

    return {
        document_id: frozenset(posting.position for posting in group)
        for document_id, group in groupby(postings, key=_by_document)
    }


class PhraseQueryEngine:
    """Answers phrase-existence queries against an immutable index.

    Holds no mutable state, so one engine can serve many threads at once.
    """

    __slots__ = ("index",)

    def __init__(self, index: InvertedIndex) -> None:
        self.index = index

    def contains_phrase(self, phrase: Iterable[str]) -> bool:
        """Return True when some document contains ``phrase`` contiguously."""

        return self.match(phrase).matched

    def match(self, phrase: Iterable[str], *, collect_all: bool = False) -> MatchResult:
        """Run the phrase query.

        With ``collect_all`` every matching document id is returned; otherwise
        the search stops at the first match.
        """

        terms = list(phrase)
        if not terms:
            return _NO_MATCH

        posting_lists = [self.index.postings_for(term) for term in terms]
        if any(not postings for postings in posting_lists):
            return _NO_MATCH

        head = posting_lists[0]
        if len(terms) == 1:
            return self._single_term(head, collect_all=collect_all)

        tails = [positions_by_document(postings) for postings in posting_lists[1:]]
        matches: list[int] = []
        for document_id, group in groupby(head, key=_by_document):
            if not _occurs_contiguously(document_id, group, tails):
                continue
            if not collect_all:
                return MatchResult(matched=True, document_ids=(document_id,))
            matches.append(document_id)

        if not matches:
            return _NO_MATCH
        return MatchResult(matched=True, document_ids=tuple(matches))

    def _single_term(self, postings: Sequence[Posting], *, collect_all: bool) -> MatchResult:
        if not collect_all:
            return MatchResult(matched=True, document_ids=(postings[0].document_id,))
        document_ids = tuple(document_id for document_id, _ in groupby(postings, key=_by_document))
        return MatchResult(matched=True, document_ids=document_ids)


def _occurs_contiguously(
    document_id: int,
    head_postings: Iterable[Posting],
    tails: Sequence[Mapping[int, frozenset[int]]],
) -> bool:
    tail_positions: list[frozenset[int]] = []
    for positions_by_doc in tails:
        positions = positions_by_doc.get(document_id)
        if positions is None:
            return False
        tail_positions.append(positions)

    for posting in head_postings:
        start = posting.position
        if all(start + offset in positions for offset, positions in enumerate(tail_positions, start=1)):
            return True
    return False
