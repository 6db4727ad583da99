"""Search data models."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Document:
    """An ingested corpus document. Immutable once added to the store."""

    id: int
    source_path: str
    terms: tuple[str, ...]


@dataclass(frozen=True, slots=True, order=True)
class Posting:
    """A single occurrence of a term: the document and the 0-based term position.

    Ordering compares ``(document_id, position)``, the order posting lists are
    kept in.
    """

    document_id: int
    position: int


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of a phrase query.

    ``document_ids`` lists the matching documents in ascending order when the
    query was asked to collect them; otherwise it holds at most the first match.
    """

    matched: bool
    document_ids: tuple[int, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.matched
