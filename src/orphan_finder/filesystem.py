"""Deletion side effects for orphaned candidates."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from pathlib import Path

from orphan_finder.errors import DeletionError
from orphan_finder.observability.metrics import DELETION_FAILURES, ORPHANS_DELETED


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DeletionOutcome:
    """Files removed and per-file failures from one deletion pass."""

    deleted: list[Path] = field(default_factory=list)
    errors: list[DeletionError] = field(default_factory=list)


def delete_file(path: Path) -> None:
    """Remove ``path``, translating filesystem failures into ``DeletionError``."""

    try:
        path.unlink()
    except FileNotFoundError as exc:
        raise DeletionError(f"Orphan vanished before deletion: {path}", path=path) from exc
    except OSError as exc:
        raise DeletionError(f"Cannot delete {path}: {exc.strerror or exc}", path=path) from exc


def delete_orphans(paths: Iterable[Path]) -> DeletionOutcome:
    """Delete every path, collecting failures instead of stopping at the first one."""

    outcome = DeletionOutcome()
    for path in paths:
        try:
            delete_file(path)
        except DeletionError as exc:
            logger.error("%s", exc)
            DELETION_FAILURES.inc()
            outcome.errors.append(exc)
            continue
        ORPHANS_DELETED.inc()
        outcome.deleted.append(path)
    return outcome
