"""Centralized configuration for orphan-finder using Pydantic Settings."""

from __future__ import annotations

from collections.abc import Iterable
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from orphan_finder.errors import ConfigurationError


def _default_max_parallel() -> int:
    cpu_count = os.cpu_count() or 1
    if cpu_count <= 2:
        return 1
    return min(8, cpu_count)


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def normalize_extensions(extensions: Iterable[str]) -> tuple[str, ...]:
    """Lowercase extensions, add the leading dot and drop blanks and duplicates."""
    normalized: list[str] = []
    for raw in extensions:
        extension = raw.strip().lower()
        if not extension:
            continue
        if not extension.startswith("."):
            extension = f".{extension}"
        if extension not in normalized:
            normalized.append(extension)
    return tuple(normalized)


class Settings(BaseSettings):
    """Environment-driven settings, validated at startup.

    Every field can be set through an ``ORPHAN_FINDER_``-prefixed environment
    variable or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="ORPHAN_FINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    # Corpus discovery
    document_extensions: str = Field(
        default=".md",
        description="Comma-separated file extensions treated as corpus documents",
    )
    skip_dirs: str = Field(
        default=".git,.hg,.svn",
        description="Comma-separated directory names never descended into while enumerating the corpus",
    )
    on_ingest_error: Literal["fail", "skip"] = Field(
        default="fail",
        description="Abort the run on an unreadable document, or exclude it and report it",
    )

    # Classification
    max_parallel: int = Field(default_factory=_default_max_parallel, ge=1, description="Classification workers")

    # Observability
    service_name: str = Field(default="orphan-finder", description="OpenTelemetry service name")
    otlp_endpoint: str = Field(default="", description="OTLP/HTTP trace endpoint; empty disables export")
    metrics_file: str = Field(default="", description="Prometheus textfile written at the end of a run")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return normalized.lower()

    def get_document_extensions(self) -> tuple[str, ...]:
        """Return normalized extensions: lowercase, with a leading dot."""
        return normalize_extensions(_split_csv(self.document_extensions))

    def get_skip_dirs(self) -> frozenset[str]:
        return frozenset(_split_csv(self.skip_dirs))


class RunConfig(BaseModel):
    """Immutable description of one orphan-finder run."""

    model_config = ConfigDict(frozen=True)

    candidate_root: Path
    corpus_root: Path
    index_location: Path | None = None
    dry_run: bool = False
    rebuild_index: bool = False
    recursive_candidates: bool = True

    @classmethod
    def create(
        cls,
        *,
        candidate_root: str | Path,
        corpus_root: str | Path,
        index_location: str | Path | None = None,
        dry_run: bool = False,
        rebuild_index: bool = False,
        recursive_candidates: bool = True,
    ) -> RunConfig:
        """Resolve and validate the roots, raising ``ConfigurationError`` on bad input."""

        candidates = _resolve_directory(candidate_root, "Candidate root")
        corpus = _resolve_directory(corpus_root, "Corpus root")
        if candidates == corpus:
            raise ConfigurationError(
                f"Candidate root and corpus root are the same directory: {candidates}",
                path=candidates,
            )

        location: Path | None = None
        if index_location is not None and str(index_location).strip():
            location = Path(index_location).expanduser().resolve()
            if location.exists() and not location.is_dir():
                raise ConfigurationError(f"Index location is not a directory: {location}", path=location)

        return cls(
            candidate_root=candidates,
            corpus_root=corpus,
            index_location=location,
            dry_run=dry_run,
            rebuild_index=rebuild_index,
            recursive_candidates=recursive_candidates,
        )


def _resolve_directory(raw: str | Path, label: str) -> Path:
    if not str(raw).strip():
        raise ConfigurationError(f"{label} must not be empty")
    path = Path(raw).expanduser()
    if not path.exists():
        raise ConfigurationError(f"{label} does not exist: {path}", path=path)
    if not path.is_dir():
        raise ConfigurationError(f"{label} is not a directory: {path}", path=path)
    return path.resolve()
