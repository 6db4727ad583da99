"""SQLite persistence for the positional inverted index.

One index lives in a single ``index.db`` file inside the caller-supplied index
location:

- ``metadata``: format version, creation time, document count, corpus root
- ``documents``: dense document ids with their source paths
- ``postings``: one row per ``(term, doc_id)`` with positions packed as an
  ``array("I")`` blob in ascending order

Saves go to a scratch file that replaces ``index.db`` only after a successful
commit, so an interrupted write never leaves a half-built index behind.
"""

from __future__ import annotations

from array import array
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
import sqlite3

from orphan_finder.errors import PersistenceError
from orphan_finder.observability.tracing import create_span
from orphan_finder.search.inverted_index import InvertedIndex
from orphan_finder.search.models import Posting
from orphan_finder.search.phrase import positions_by_document
from orphan_finder.search.sqlite_pragmas import apply_read_pragmas, apply_write_pragmas


logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.db"
FORMAT_VERSION = "2"

_SCHEMA = """
    CREATE TABLE metadata (
        key TEXT PRIMARY KEY,
        value TEXT
    );

    CREATE TABLE documents (
        doc_id INTEGER PRIMARY KEY,
        source_path TEXT NOT NULL,
        term_count INTEGER NOT NULL
    );

    CREATE TABLE postings (
        term TEXT NOT NULL,
        doc_id INTEGER NOT NULL,
        positions_blob BLOB NOT NULL,
        PRIMARY KEY (term, doc_id)
    ) WITHOUT ROWID;
"""


@dataclass(frozen=True, slots=True)
class LoadedIndex:
    """An index read back from disk together with its build metadata."""

    index: InvertedIndex
    created_at: datetime | None
    corpus_root: str | None
    format_version: str


class SqliteIndexStore:
    """Reads and writes one persisted index at ``directory / index.db``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.db_path = self.directory / INDEX_FILENAME
        self._conn: sqlite3.Connection | None = None

    def exists(self) -> bool:
        return self.db_path.is_file()

    def save(self, index: InvertedIndex, *, corpus_root: str | Path | None = None) -> Path:
        """Persist ``index``, replacing any index already stored at this location."""

        self.close()
        scratch_path = self.db_path.with_name(self.db_path.name + ".tmp")
        with create_span("index.save", attributes={"index.path": str(self.db_path)}):
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                scratch_path.unlink(missing_ok=True)
            except OSError as exc:
                msg = f"Index location is not writable: {self.directory} ({exc})"
                raise PersistenceError(msg, path=self.directory) from exc

            conn = None
            try:
                conn = sqlite3.connect(scratch_path)
                apply_write_pragmas(conn)
                conn.executescript(_SCHEMA)
                self._store_metadata(conn, index, corpus_root)
                self._store_documents(conn, index)
                self._store_postings(conn, index)
                conn.commit()
                conn.close()
                conn = None
                scratch_path.replace(self.db_path)
            except (sqlite3.Error, OSError) as exc:
                if conn is not None:
                    conn.close()
                try:
                    scratch_path.unlink(missing_ok=True)
                except OSError as cleanup_error:
                    logger.warning("Failed to remove partial index file %s: %s", scratch_path, cleanup_error)
                raise PersistenceError(f"Failed to write index {self.db_path}: {exc}", path=self.db_path) from exc

        logger.info(
            "Saved index to %s (%d documents, %d terms)",
            self.db_path,
            index.doc_count,
            index.term_count,
        )
        return self.db_path

    def load(self) -> LoadedIndex:
        """Read the persisted index into memory."""

        if not self.exists():
            raise PersistenceError(f"No index found at {self.db_path}", path=self.db_path)

        with create_span("index.load", attributes={"index.path": str(self.db_path)}):
            try:
                conn = self._connection()
                metadata = dict(conn.execute("SELECT key, value FROM metadata").fetchall())
                format_version = metadata.get("format_version", "")
                if format_version != FORMAT_VERSION:
                    raise PersistenceError(
                        f"Unsupported index format {format_version!r} in {self.db_path} (expected {FORMAT_VERSION!r})",
                        path=self.db_path,
                    )
                sources = self._load_sources(conn)
                postings = self._load_postings(conn)
            except sqlite3.Error as exc:
                raise PersistenceError(f"Failed to read index {self.db_path}: {exc}", path=self.db_path) from exc

            try:
                index = InvertedIndex.from_postings(postings, sources)
            except ValueError as exc:
                raise PersistenceError(f"Corrupt index {self.db_path}: {exc}", path=self.db_path) from exc

        logger.info("Loaded index from %s (%d documents, %d terms)", self.db_path, index.doc_count, index.term_count)
        return LoadedIndex(
            index=index,
            created_at=_parse_timestamp(metadata.get("created_at")),
            corpus_root=metadata.get("corpus_root") or None,
            format_version=format_version,
        )

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        except sqlite3.Error as exc:
            logger.warning("Failed to close index connection for %s: %s", self.db_path, exc)
        self._conn = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
            self._conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
            apply_read_pragmas(self._conn)
        return self._conn

    def _store_metadata(self, conn: sqlite3.Connection, index: InvertedIndex, corpus_root: str | Path | None) -> None:
        metadata = [
            ("format_version", FORMAT_VERSION),
            ("created_at", datetime.now(timezone.utc).isoformat()),
            ("doc_count", str(index.doc_count)),
            ("term_count", str(index.term_count)),
            ("corpus_root", str(corpus_root) if corpus_root is not None else ""),
        ]
        conn.executemany("INSERT INTO metadata (key, value) VALUES (?, ?)", metadata)

    def _store_documents(self, conn: sqlite3.Connection, index: InvertedIndex) -> None:
        term_counts: defaultdict[int, int] = defaultdict(int)
        for _term, postings in index.items():
            for posting in postings:
                term_counts[posting.document_id] += 1
        conn.executemany(
            "INSERT INTO documents (doc_id, source_path, term_count) VALUES (?, ?, ?)",
            ((doc_id, source, term_counts[doc_id]) for doc_id, source in enumerate(index.sources)),
        )

    def _store_postings(self, conn: sqlite3.Connection, index: InvertedIndex) -> None:
        def rows() -> Iterator[tuple[str, int, bytes]]:
            for term, postings in index.items():
                for doc_id, positions in positions_by_document(postings).items():
                    yield term, doc_id, array("I", sorted(positions)).tobytes()

        conn.executemany("INSERT INTO postings (term, doc_id, positions_blob) VALUES (?, ?, ?)", rows())

    def _load_sources(self, conn: sqlite3.Connection) -> list[str]:
        sources: list[str] = []
        for expected_id, (doc_id, source_path) in enumerate(
            conn.execute("SELECT doc_id, source_path FROM documents ORDER BY doc_id")
        ):
            if doc_id != expected_id:
                raise PersistenceError(
                    f"Corrupt index {self.db_path}: document ids are not dense (expected {expected_id}, got {doc_id})",
                    path=self.db_path,
                )
            sources.append(source_path)
        return sources

    def _load_postings(self, conn: sqlite3.Connection) -> dict[str, list[Posting]]:
        postings: defaultdict[str, list[Posting]] = defaultdict(list)
        cursor = conn.execute("SELECT term, doc_id, positions_blob FROM postings ORDER BY term, doc_id")
        for term, doc_id, positions_blob in cursor:
            positions = array("I")
            positions.frombytes(positions_blob)
            postings[term].extend(Posting(doc_id, position) for position in positions)
        return postings


@contextmanager
def open_index_store(location: str | Path) -> Iterator[SqliteIndexStore]:
    """Open the index store at ``location`` and close it on every exit path."""

    store = SqliteIndexStore(location)
    try:
        yield store
    finally:
        store.close()


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None
