"""Unit tests for settings and run configuration."""

import pytest
from pydantic import ValidationError

from orphan_finder.config import RunConfig, Settings, normalize_extensions
from orphan_finder.errors import ConfigurationError

from tests.fixtures.corpus import write_file


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ORPHAN_FINDER_MAX_PARALLEL", raising=False)

        settings = Settings()

        assert settings.log_level == "info"
        assert settings.log_json is False
        assert settings.get_document_extensions() == (".md",)
        assert settings.get_skip_dirs() == frozenset({".git", ".hg", ".svn"})
        assert settings.on_ingest_error == "fail"
        assert settings.max_parallel >= 1
        assert settings.otlp_endpoint == ""
        assert settings.metrics_file == ""

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ORPHAN_FINDER_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("ORPHAN_FINDER_DOCUMENT_EXTENSIONS", "md, RST ,.txt,md")
        monkeypatch.setenv("ORPHAN_FINDER_SKIP_DIRS", "node_modules")
        monkeypatch.setenv("ORPHAN_FINDER_ON_INGEST_ERROR", "skip")
        monkeypatch.setenv("ORPHAN_FINDER_MAX_PARALLEL", "4")

        settings = Settings()

        assert settings.log_level == "warning"
        assert settings.get_document_extensions() == (".md", ".rst", ".txt")
        assert settings.get_skip_dirs() == frozenset({"node_modules"})
        assert settings.on_ingest_error == "skip"
        assert settings.max_parallel == 4

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("ORPHAN_FINDER_LOG_JSON=true\n", encoding="utf-8")

        assert Settings().log_json is True

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("ORPHAN_FINDER_LOG_LEVEL", "chatty"),
            ("ORPHAN_FINDER_MAX_PARALLEL", "0"),
            ("ORPHAN_FINDER_ON_INGEST_ERROR", "ignore"),
        ],
    )
    def test_invalid_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            Settings()


def test_normalize_extensions():
    assert normalize_extensions(["MD", ".md", " ", "txt"]) == (".md", ".txt")


class TestRunConfig:
    @pytest.fixture
    def roots(self, tmp_path):
        candidates = tmp_path / "corpus" / "img"
        candidates.mkdir(parents=True)
        return candidates, tmp_path / "corpus"

    def test_resolves_roots(self, roots):
        candidates, corpus = roots

        config = RunConfig.create(candidate_root=str(candidates), corpus_root=corpus, dry_run=True)

        assert config.candidate_root == candidates.resolve()
        assert config.corpus_root == corpus.resolve()
        assert config.index_location is None
        assert config.dry_run is True
        assert config.recursive_candidates is True

    def test_is_frozen(self, roots):
        candidates, corpus = roots
        config = RunConfig.create(candidate_root=candidates, corpus_root=corpus)

        with pytest.raises(ValidationError):
            config.dry_run = True

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_root_rejected(self, roots, blank):
        _, corpus = roots

        with pytest.raises(ConfigurationError, match="must not be empty"):
            RunConfig.create(candidate_root=blank, corpus_root=corpus)

    def test_missing_root_rejected(self, roots, tmp_path):
        candidates, _ = roots

        with pytest.raises(ConfigurationError, match="Corpus root does not exist") as excinfo:
            RunConfig.create(candidate_root=candidates, corpus_root=tmp_path / "nope")

        assert excinfo.value.path == str(tmp_path / "nope")

    def test_file_root_rejected(self, roots, tmp_path):
        _, corpus = roots
        not_dir = write_file(tmp_path / "file.png")

        with pytest.raises(ConfigurationError, match="Candidate root is not a directory"):
            RunConfig.create(candidate_root=not_dir, corpus_root=corpus)

    def test_same_roots_rejected(self, roots):
        _, corpus = roots

        with pytest.raises(ConfigurationError, match="same directory"):
            RunConfig.create(candidate_root=corpus, corpus_root=corpus / "img" / "..")

    def test_index_location_resolved(self, roots, tmp_path):
        candidates, corpus = roots

        config = RunConfig.create(candidate_root=candidates, corpus_root=corpus, index_location=tmp_path / "idx")

        assert config.index_location == (tmp_path / "idx").resolve()

    def test_blank_index_location_means_in_memory(self, roots):
        candidates, corpus = roots

        config = RunConfig.create(candidate_root=candidates, corpus_root=corpus, index_location=" ")

        assert config.index_location is None

    def test_index_location_file_rejected(self, roots, tmp_path):
        candidates, corpus = roots
        blocker = write_file(tmp_path / "index.db")

        with pytest.raises(ConfigurationError, match="Index location is not a directory"):
            RunConfig.create(candidate_root=candidates, corpus_root=corpus, index_location=blocker)
