"""Shared test fixtures and configuration."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep ambient ORPHAN_FINDER_* variables, .env files and root log handlers out of tests."""
    for key in list(os.environ):
        if key.upper().startswith("ORPHAN_FINDER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ORPHAN_FINDER_MAX_PARALLEL", "2")
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
