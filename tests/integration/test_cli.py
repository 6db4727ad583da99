"""End-to-end runs of the command line against temporary directory trees."""

import io

import pytest

from orphan_finder import filesystem
from orphan_finder.cli import EXIT_DELETION_ERRORS, EXIT_FAILURE, EXIT_OK, build_argument_parser, main
from orphan_finder.errors import DeletionError
from orphan_finder.search.sqlite_storage import INDEX_FILENAME

from tests.fixtures.corpus import deny_listing, write_file


pytestmark = pytest.mark.integration


@pytest.fixture
def site(tmp_path):
    """A documentation tree whose image folder sits inside the corpus."""

    corpus = tmp_path / "site"
    images = corpus / "img"
    write_file(corpus / "index.md", "Welcome! ![logo](img/logo.png)")
    write_file(corpus / "guide" / "setup.md", "See img/screens/step-1.png for details.")
    write_file(images / "README.md", "orphan.png is mentioned only inside the candidate root")
    for name in ("logo.png", "orphan.png", "screens/step-1.png", "screens/step-2.png"):
        write_file(images / name, b"\x89PNG")
    return corpus, images


def _run(*argv):
    out = io.StringIO()
    code = main([str(arg) for arg in argv], stdout=out)
    return code, out.getvalue().splitlines()


def test_dry_run_reports_without_deleting(site):
    corpus, images = site

    code, lines = _run("--what", images, "--where", corpus, "--dry-run")

    assert code == EXIT_OK
    assert lines == [
        str(images.resolve() / "README.md"),
        str(images.resolve() / "orphan.png"),
        str(images.resolve() / "screens" / "step-2.png"),
        "Found 3 orphans from 5.",
    ]
    assert (images / "orphan.png").exists()


def test_deletes_orphans(site):
    corpus, images = site

    code, lines = _run("--what", images, "--where", corpus)

    assert code == EXIT_OK
    assert lines[-1] == "Found 3 orphans from 5."
    assert sorted(path.name for path in images.rglob("*") if path.is_file()) == ["logo.png", "step-1.png"]

    code, lines = _run("--what", images, "--where", corpus)
    assert lines == ["Found 0 orphans from 2."]


def test_shallow_only_examines_top_level(site):
    corpus, images = site

    code, lines = _run("--what", images, "--where", corpus, "--dry-run", "--shallow")

    assert code == EXIT_OK
    assert lines[-1] == "Found 2 orphans from 3."


def test_extra_extensions_widen_the_corpus(site):
    corpus, images = site
    write_file(corpus / "notes.txt", "old shot: img/screens/step-2.png")

    _, lines = _run("--what", images, "--where", corpus, "--dry-run", "--extension", "txt", "--extension", "md")

    assert lines[-1] == "Found 2 orphans from 5."


def test_empty_corpus_orphans_everything(tmp_path):
    corpus = tmp_path / "empty"
    corpus.mkdir()
    images = write_file(tmp_path / "img" / "a.png").parent

    _, lines = _run("--what", images, "--where", corpus, "--dry-run")

    assert lines[-1] == "Found 1 orphans from 1."


class TestPersistentIndex:
    def test_index_is_reused_until_rebuilt(self, site, tmp_path):
        corpus, images = site
        index_dir = tmp_path / "index"

        _, first = _run("--what", images, "--where", corpus, "--index", index_dir, "--dry-run")
        assert (index_dir / INDEX_FILENAME).is_file()
        assert first[-1] == "Found 3 orphans from 5."

        write_file(corpus / "changelog.md", "Removed img/orphan.png")
        _, reused = _run("--what", images, "--where", corpus, "--index", index_dir, "--dry-run")
        assert reused == first

        _, rebuilt = _run("--what", images, "--where", corpus, "--index", index_dir, "--rebuild", "--dry-run")
        assert rebuilt[-1] == "Found 2 orphans from 5."

    def test_incompatible_index_fails(self, site, tmp_path):
        corpus, images = site
        index_dir = tmp_path / "index"
        write_file(index_dir / INDEX_FILENAME, b"garbage" * 64)

        code, lines = _run("--what", images, "--where", corpus, "--index", index_dir, "--dry-run")

        assert code == EXIT_FAILURE
        assert lines == []
        assert (images / "orphan.png").exists()


class TestFailures:
    def test_missing_candidate_root(self, tmp_path):
        code, lines = _run("--what", tmp_path / "missing", "--where", tmp_path, "--dry-run")

        assert code == EXIT_FAILURE
        assert lines == []

    def test_unreadable_document_aborts_by_default(self, site):
        corpus, images = site
        write_file(corpus / "broken.md", b"\xff\xfe\xfd")

        code, _ = _run("--what", images, "--where", corpus)

        assert code == EXIT_FAILURE
        assert (images / "orphan.png").exists()

    def test_unreadable_document_skipped_when_configured(self, site, monkeypatch):
        corpus, images = site
        write_file(corpus / "broken.md", b"\xff\xfe\xfd")
        monkeypatch.setenv("ORPHAN_FINDER_ON_INGEST_ERROR", "skip")

        code, lines = _run("--what", images, "--where", corpus, "--dry-run")

        assert code == EXIT_OK
        assert lines[-1] == "Found 3 orphans from 5."

    def test_unlistable_corpus_directory_aborts_before_deleting(self, site, monkeypatch):
        corpus, images = site
        write_file(corpus / "locked" / "ref.md", "see img/orphan.png")
        deny_listing(monkeypatch, "locked")

        code, lines = _run("--what", images, "--where", corpus)

        assert code == EXIT_FAILURE
        assert lines == []
        assert (images / "orphan.png").exists()

    def test_unlistable_corpus_directory_skipped_when_configured(self, site, monkeypatch):
        corpus, images = site
        write_file(corpus / "locked" / "ref.md", "see img/orphan.png")
        deny_listing(monkeypatch, "locked")
        monkeypatch.setenv("ORPHAN_FINDER_ON_INGEST_ERROR", "skip")

        code, lines = _run("--what", images, "--where", corpus, "--dry-run")

        assert code == EXIT_OK
        assert lines[-1] == "Found 3 orphans from 5."

    def test_unlistable_candidate_directory_aborts(self, site, monkeypatch):
        corpus, images = site
        deny_listing(monkeypatch, "screens")

        code, lines = _run("--what", images, "--where", corpus)

        assert code == EXIT_FAILURE
        assert lines == []
        assert (images / "orphan.png").exists()

    def test_invalid_settings(self, site, monkeypatch):
        corpus, images = site
        monkeypatch.setenv("ORPHAN_FINDER_MAX_PARALLEL", "zero")

        code, _ = _run("--what", images, "--where", corpus, "--dry-run")

        assert code == EXIT_FAILURE

    def test_deletion_failure_exit_code(self, site, monkeypatch):
        corpus, images = site

        def refuse(path):
            raise DeletionError(f"Cannot delete {path}: Permission denied", path=path)

        monkeypatch.setattr(filesystem, "delete_file", refuse)

        code, lines = _run("--what", images, "--where", corpus)

        assert code == EXIT_DELETION_ERRORS
        assert lines[-1] == "Found 3 orphans from 5."
        assert (images / "orphan.png").exists()

    def test_required_arguments(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            build_argument_parser().parse_args(["--what", "img"])

        assert excinfo.value.code == 2
        assert "--where" in capsys.readouterr().err


def test_metrics_file_written(site, tmp_path, monkeypatch):
    corpus, images = site
    metrics_path = tmp_path / "out" / "run.prom"
    monkeypatch.setenv("ORPHAN_FINDER_METRICS_FILE", str(metrics_path))

    _run("--what", images, "--where", corpus, "--dry-run", "--json-logs")

    assert "orphan_finder_candidates_total" in metrics_path.read_text(encoding="utf-8")
