"""
Phrase search package.

This package provides a pure-Python positional search stack:
- analyzers: Tokenizers and filters shared by indexing and querying
- models: Documents, postings and match results
- storage: Append-only document store
- inverted_index: Term -> ordered postings
- phrase: Exact contiguous phrase matching
- sqlite_storage: SQLite persistence for built indexes
- indexer: Corpus ingestion and index build/load
"""
