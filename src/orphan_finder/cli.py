"""Command-line entry point: find (and optionally delete) unreferenced files."""

# ruff: noqa: T201

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
from pathlib import Path
import sys
from typing import TextIO

from pydantic import ValidationError

from orphan_finder.config import RunConfig, Settings, normalize_extensions
from orphan_finder.detector import OrphanDetector, OrphanReport
from orphan_finder.errors import OrphanFinderError
from orphan_finder.observability.logging import configure_logging
from orphan_finder.observability.metrics import write_metrics_file
from orphan_finder.observability.tracing import configure_trace_exporter, init_tracing, shutdown_tracing
from orphan_finder.search.indexer import CorpusIndexer, CorpusIndexingContext, ResolvedIndex, resolve_index
from orphan_finder.search.phrase import PhraseQueryEngine
from orphan_finder.search.sqlite_storage import open_index_store
from orphan_finder.sources import iter_candidates


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_DELETION_ERRORS = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orphan-finder",
        description="Find and delete files which are not referenced by any document in a corpus.",
    )
    parser.add_argument(
        "--what",
        required=True,
        type=Path,
        metavar="CANDIDATE_ROOT",
        help="Directory holding the files to look for",
    )
    parser.add_argument(
        "--where",
        required=True,
        type=Path,
        metavar="CORPUS_ROOT",
        help="Directory searched recursively for referencing documents. May contain --what; it is ignored",
    )
    parser.add_argument(
        "--index",
        type=Path,
        metavar="DIR",
        help="Index directory to reuse (built there on first use). Without it the index lives for this run only",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Rebuild the index at --index even if one already exists",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report orphans but don't delete them",
    )
    parser.add_argument(
        "--shallow",
        action="store_true",
        help="Only consider files directly inside --what, not its subdirectories",
    )
    parser.add_argument(
        "--extension",
        action="append",
        dest="extensions",
        metavar="EXT",
        help="Corpus document extension (repeatable; default from ORPHAN_FINDER_DOCUMENT_EXTENSIONS, '.md')",
    )
    parser.add_argument(
        "--log-level",
        choices=("debug", "info", "warning", "error"),
        help="Override ORPHAN_FINDER_LOG_LEVEL",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON logs on stderr",
    )
    return parser


def run(run_config: RunConfig, settings: Settings, *, extensions: Sequence[str] | None = None) -> OrphanReport:
    """Build or load the index, classify candidates and apply deletions."""

    skip_dirs = settings.get_skip_dirs()
    context = CorpusIndexingContext(
        corpus_root=run_config.corpus_root,
        exclude_root=run_config.candidate_root,
        extensions=normalize_extensions(extensions) if extensions else settings.get_document_extensions(),
        skip_dirs=skip_dirs,
        on_ingest_error=settings.on_ingest_error,
    )
    indexer = CorpusIndexer(context)
    resolved = _resolve_index(indexer, run_config)
    build_result = resolved.build_result
    if build_result and build_result.errors:
        logger.warning(
            "%d corpus documents and %d directories were excluded from the index and cannot reference anything",
            build_result.documents_skipped,
            build_result.directories_skipped,
        )

    detector = OrphanDetector(PhraseQueryEngine(resolved.index))
    candidates = iter_candidates(
        run_config.candidate_root,
        recursive=run_config.recursive_candidates,
        skip_dirs=skip_dirs,
    )
    return detector.find_orphans(candidates, dry_run=run_config.dry_run, max_parallel=settings.max_parallel)


def main(argv: Sequence[str] | None = None, *, stdout: TextIO | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    out = stdout or sys.stdout

    try:
        settings = Settings()
    except ValidationError as exc:
        configure_logging()
        logger.error("Invalid configuration: %s", exc)
        return EXIT_FAILURE

    configure_logging(args.log_level or settings.log_level, json_output=args.json_logs or settings.log_json)
    init_tracing(settings.service_name)
    configure_trace_exporter(settings.otlp_endpoint)

    try:
        run_config = RunConfig.create(
            candidate_root=args.what,
            corpus_root=args.where,
            index_location=args.index,
            dry_run=args.dry_run,
            rebuild_index=args.rebuild,
            recursive_candidates=not args.shallow,
        )
        report = run(run_config, settings, extensions=args.extensions)
    except OrphanFinderError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    finally:
        shutdown_tracing()
        _write_metrics(settings.metrics_file)

    _print_report(report, out)
    if report.deletion_errors:
        logger.error("%d orphans could not be deleted", len(report.deletion_errors))
        return EXIT_DELETION_ERRORS
    return EXIT_OK


def _resolve_index(indexer: CorpusIndexer, run_config: RunConfig) -> ResolvedIndex:
    if run_config.index_location is None:
        return resolve_index(indexer, None)

    logger.info("Index location: %s", run_config.index_location)
    with open_index_store(run_config.index_location) as store:
        return resolve_index(indexer, store, rebuild=run_config.rebuild_index)


def _print_report(report: OrphanReport, out: TextIO) -> None:
    for orphan in report.orphans:
        print(orphan.path, file=out)
    print(report.summary, file=out)


def _write_metrics(metrics_file: str) -> None:
    if not metrics_file:
        return
    try:
        write_metrics_file(metrics_file)
    except OSError as exc:
        logger.warning("Failed to write metrics file %s: %s", metrics_file, exc)


if __name__ == "__main__":
    sys.exit(main())
