"""Analyzer utilities for the phrase index.

This module mirrors Whoosh's composable tokenizer/filter design without
pulling in heavy dependencies. The same analyzer is used when documents are
indexed and when candidate paths are turned into query phrases, so both sides
always agree on term boundaries.

Unlike a relevance-oriented analyzer, nothing here drops tokens: there are no
stopwords, no minimum lengths and no stemming. A path segment such as ``a`` or
``2`` must survive analysis or phrase matching would silently change meaning.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import re
from typing import Protocol
import unicodedata


PATH_SEPARATOR = "/"
_FOREIGN_SEPARATORS = ("\\",)

# Combining diacritical mark blocks; `re` has no \p{M} class.
_COMBINING_MARKS = "\u0300-\u036f\u1ab0-\u1aff\u1dc0-\u1dff\u20d0-\u20ff\ufe20-\ufe2f"
WORD_PATTERN = rf"[^\W_](?:[^\W_]|[{_COMBINING_MARKS}])*"


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int

    def copy_with(self, **updates: object) -> Token:
        data = {
            "text": self.text,
            "position": self.position,
            "start_char": self.start_char,
            "end_char": self.end_char,
        }
        data.update(updates)
        return Token(**data)  # type: ignore[arg-type]


class Analyzer(Protocol):
    """Protocol implemented by analyzers."""

    def __call__(self, text: str) -> list[Token]:  # pragma: no cover - interface definition
        ...

    def stream(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers."""

    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer that yields runs of Unicode letters and digits.

    Underscores count as separators, so ``cat_photo`` becomes ``cat`` and
    ``photo`` just like ``cat-photo`` does. Combining marks stay attached to
    the letter they follow, so a decomposed ``i`` + U+0308 never splits a word.
    """

    def __init__(self, pattern: str = WORD_PATTERN, flags: int = re.UNICODE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class LowercaseFilter:
    """Filter that lowercases token text."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            lowered = token.text.lower()
            if lowered == token.text:
                yield token
            else:
                yield token.copy_with(text=lowered)


class AnalyzerPipeline:
    """Composable analyzer pipeline (Unicode normalization + tokenizer + filters).

    Text is brought to ``normalization`` form before tokenizing, so composed
    and decomposed spellings of the same word (NFC prose, NFD filenames on
    macOS) yield identical terms. Token offsets refer to the normalized text.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        filters: Iterable[TokenFilter] | None = None,
        *,
        normalization: str | None = "NFC",
    ) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])
        self.normalization = normalization

    def stream(self, text: str) -> Iterator[Token]:
        if self.normalization:
            text = unicodedata.normalize(self.normalization, text)
        tokens: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            tokens = token_filter(tokens)
        for idx, token in enumerate(tokens):  # normalize positions post-filtering
            token.position = idx
            yield token

    def __call__(self, text: str) -> list[Token]:
        return list(self.stream(text))


class StandardAnalyzer:
    """Default analyzer used for document bodies."""

    def __init__(self) -> None:
        self.pipeline = AnalyzerPipeline(RegexTokenizer(), [LowercaseFilter()])

    def stream(self, text: str) -> Iterator[Token]:
        return self.pipeline.stream(text)

    def __call__(self, text: str) -> list[Token]:
        return self.pipeline(text)


class PathAnalyzer:
    """Analyzer for filesystem paths.

    Normalizes path separators to ``/`` before handing the text to the
    standard analyzer, so ``assets\\img\\cat.png`` and ``assets/img/cat.png``
    produce the same terms as the prose ``see assets/img/cat.png``.
    """

    def __init__(self) -> None:
        self._standard = StandardAnalyzer()

    def stream(self, text: str) -> Iterator[Token]:
        return self._standard.stream(normalize_path(text))

    def __call__(self, text: str) -> list[Token]:
        return list(self.stream(text))


def normalize_path(path: str) -> str:
    """Return ``path`` with every separator rewritten to ``/`` and no leading/trailing separators."""

    normalized = path
    for separator in _FOREIGN_SEPARATORS:
        normalized = normalized.replace(separator, PATH_SEPARATOR)
    return normalized.strip(PATH_SEPARATOR)


class TermSequence:
    """Lazy, restartable sequence of terms produced by an analyzer.

    Each iteration re-runs the analyzer over the source text, so the sequence
    can be consumed more than once without holding the tokens in memory.
    """

    __slots__ = ("_analyzer", "_text")

    def __init__(self, text: str, analyzer: Analyzer) -> None:
        self._text = text
        self._analyzer = analyzer

    def __iter__(self) -> Iterator[str]:
        for token in self._analyzer.stream(self._text):
            yield token.text

    def __repr__(self) -> str:
        return f"TermSequence({self._text[:40]!r})"


def tokenize(text: str, analyzer: Analyzer | None = None) -> TermSequence:
    """Split ``text`` into lowercase terms using ``analyzer`` (standard by default)."""

    return TermSequence(text, analyzer or StandardAnalyzer())
