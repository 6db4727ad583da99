"""Filesystem collaborators that feed the indexer and the detector.

Corpus documents are enumerated recursively; anything lying under the
candidate root is excluded by true path containment (segment-wise, on
resolved paths), so a corpus folder that merely shares a name prefix with the
candidate root is still indexed.

Directory listing failures are never dropped: the corpus walk reports them to
a caller-supplied handler (raising ``IngestError`` by default) and the
candidate walk always raises ``ConfigurationError``, since a candidate that
cannot be seen cannot be classified.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
import logging
import os
from pathlib import Path

from orphan_finder.errors import ConfigurationError, IngestError


logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = frozenset({".git", ".hg", ".svn"})

WalkErrorHandler = Callable[[IngestError], None]


@dataclass(frozen=True, slots=True)
class CorpusFile:
    """A document discovered under the corpus root."""

    path: Path
    source_path: str


@dataclass(frozen=True, slots=True)
class Candidate:
    """A file under the candidate root, with its POSIX path relative to that root."""

    path: Path
    relative_path: str


def is_within(path: Path, root: Path) -> bool:
    """Return True when ``path`` is ``root`` or lies beneath it."""

    return path == root or path.is_relative_to(root)


def raise_walk_error(error: IngestError) -> None:
    raise error


def iter_corpus_documents(
    corpus_root: Path,
    *,
    exclude_root: Path | None = None,
    extensions: Iterable[str] = (".md",),
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
    on_error: WalkErrorHandler = raise_walk_error,
) -> Iterator[CorpusFile]:
    """Yield corpus documents in sorted path order.

    A directory that cannot be listed is passed to ``on_error`` as an
    ``IngestError``; the walk continues with the remaining directories when
    the handler returns.
    """

    root = corpus_root.resolve()
    excluded = exclude_root.resolve() if exclude_root is not None else None
    wanted = {extension.lower() for extension in extensions}
    skipped = frozenset(skip_dirs)

    def report(exc: OSError) -> None:
        failed = exc.filename if exc.filename is not None else root
        on_error(IngestError(f"Cannot list corpus directory {failed}: {exc.strerror or exc}", path=failed))

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=report):
        current = Path(dirpath)
        kept = []
        for name in dirnames:
            if name in skipped:
                continue
            if excluded is not None and is_within((current / name).resolve(), excluded):
                logger.debug("Excluding %s: inside candidate root %s", current / name, excluded)
                continue
            kept.append(name)
        dirnames[:] = kept
        found.extend(current / name for name in filenames if Path(name).suffix.lower() in wanted)

    for path in sorted(found):
        if not path.is_file():
            continue
        if excluded is not None and is_within(path.resolve(), excluded):
            logger.debug("Excluding %s: inside candidate root %s", path, excluded)
            continue
        yield CorpusFile(path=path, source_path=str(path))


def read_document(path: Path) -> str:
    """Read a corpus document as UTF-8 text (a leading BOM is dropped)."""

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise IngestError(f"Cannot read document {path}: {exc.strerror or exc}", path=path) from exc
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        msg = f"Document is not valid UTF-8 text: {path} ({exc.reason} at byte {exc.start})"
        raise IngestError(msg, path=path) from exc


def iter_candidates(
    candidate_root: Path,
    *,
    recursive: bool = True,
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
) -> Iterator[Candidate]:
    """Yield candidate files in sorted order.

    With ``recursive=False`` only the root's direct children are considered.

    Raises:
        ConfigurationError: a directory under the candidate root cannot be listed.
    """

    root = candidate_root.resolve()
    skipped = frozenset(skip_dirs)

    def fail(exc: OSError) -> None:
        failed = exc.filename if exc.filename is not None else root
        msg = f"Cannot list candidate directory {failed}: {exc.strerror or exc}"
        raise ConfigurationError(msg, path=failed) from exc

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=fail):
        current = Path(dirpath)
        found.extend(current / name for name in filenames)
        if not recursive:
            break
        dirnames[:] = [name for name in dirnames if name not in skipped]

    for path in sorted(found):
        if path.is_file():
            yield Candidate(path=path, relative_path=path.relative_to(root).as_posix())
