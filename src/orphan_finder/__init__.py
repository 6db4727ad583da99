"""orphan-finder: find files that no document in a corpus refers to by path."""

__version__ = "0.1.0"
