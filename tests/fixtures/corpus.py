"""Helpers for building small corpora and indexes in tests."""

from __future__ import annotations

import errno
import os
from pathlib import Path

from orphan_finder.search.analyzers import PathAnalyzer, tokenize
from orphan_finder.search.inverted_index import InvertedIndex
from orphan_finder.search.phrase import PhraseQueryEngine
from orphan_finder.search.storage import DocumentStore


def write_file(path: Path, content: str | bytes = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


def build_index(*contents: str) -> InvertedIndex:
    store = DocumentStore()
    for idx, content in enumerate(contents):
        store.add_document(f"doc-{idx}.md", content)
    return InvertedIndex.build(store)


def build_engine(*contents: str) -> PhraseQueryEngine:
    return PhraseQueryEngine(build_index(*contents))


def path_phrase(path: str) -> list[str]:
    return list(tokenize(path, PathAnalyzer()))


def deny_listing(monkeypatch, *directory_names: str) -> None:
    """Make ``os.scandir`` fail with EACCES for directories with the given names."""

    real_scandir = os.scandir

    def scandir(path="."):
        if Path(path).name in directory_names:
            raise PermissionError(errno.EACCES, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", scandir)
