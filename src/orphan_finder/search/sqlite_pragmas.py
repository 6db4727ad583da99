"""Shared SQLite PRAGMA helpers for the persisted index."""

from __future__ import annotations

import sqlite3


def apply_read_pragmas(
    conn: sqlite3.Connection,
    *,
    cache_size_kb: int = -65536,
    mmap_size_bytes: int = 134217728,
    temp_store: str = "MEMORY",
    query_only: bool = True,
    busy_timeout_ms: int | None = 30000,
) -> None:
    """Apply read-optimized PRAGMAs with optional overrides."""
    if busy_timeout_ms is not None:
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")
    conn.execute(f"PRAGMA mmap_size = {mmap_size_bytes}")
    conn.execute(f"PRAGMA temp_store = {temp_store}")
    if query_only:
        conn.execute("PRAGMA query_only = 1")


def apply_write_pragmas(
    conn: sqlite3.Connection,
    *,
    cache_size_kb: int = -65536,
    temp_store: str = "MEMORY",
    page_size: int = 4096,
) -> None:
    """Apply PRAGMAs for a one-shot bulk write.

    The database is written to a scratch file that is renamed into place only
    after a successful commit, so rollback journaling is switched off.
    """
    conn.execute(f"PRAGMA page_size = {page_size}")
    conn.execute("PRAGMA journal_mode = OFF")
    conn.execute("PRAGMA synchronous = OFF")
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")
    conn.execute(f"PRAGMA temp_store = {temp_store}")
