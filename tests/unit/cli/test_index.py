"""Tests for the brainbase index command."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import PropertyMock, patch

import pytest
from typer.testing import CliRunner

from brainbase.cli.main import app
from brainbase.db.connection import Database
from brainbase.db.repository import Repository
from brainbase.ingest.embedder import SentenceTransformerEmbedder

runner = CliRunner()


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """No global or project config leaks into the command under test."""
    monkeypatch.setattr("brainbase.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    monkeypatch.delenv("BRAINBASE_EMBEDDING_MODEL", raising=False)
    monkeypatch.delenv("BRAINBASE_BATCH_SIZE", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def docs(tmp_path: Path) -> Path:
    folder = tmp_path / "docs"
    folder.mkdir()
    for name in ("alpha.txt", "beta.md"):
        (folder / name).write_text(
            " ".join(f"Sentence {i} of {name} covers the indexing run." for i in range(40))
        )
    return folder


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "index.db"


@pytest.fixture
def embedder(fake_embedder):
    with patch("brainbase.cli.index.make_embedder", return_value=fake_embedder):
        yield fake_embedder


def _open_repo(db_path: Path):
    conn = Database(db_path).connect()
    return Repository(conn), conn


def _index(docs: Path, db_path: Path, *extra: str):
    return runner.invoke(
        app, ["index", "--input-dir", str(docs), "--db", str(db_path), *extra]
    )


# ------------------------------------------------------------------
# Happy path
# ------------------------------------------------------------------


def test_index_creates_db_and_embeds_everything(docs, db_path, embedder):
    result = _index(docs, db_path)

    assert result.exit_code == 0, result.output
    assert db_path.exists()
    repo, conn = _open_repo(db_path)
    try:
        assert len(repo.list_documents()) == 2
        assert repo.count_fragments_missing_embedding() == 0
        meta = repo.get_meta()
        assert meta.embedding_model == "test/fake-embedder"
        assert meta.embedding_dimension == 3
    finally:
        conn.close()
    assert "Index summary" in result.output


def test_index_rerun_is_idempotent(docs, db_path, embedder):
    assert _index(docs, db_path).exit_code == 0
    calls_after_first = len(embedder.batches)

    result = _index(docs, db_path)

    assert result.exit_code == 0, result.output
    assert len(embedder.batches) == calls_after_first
    assert "All fragments already embedded" in result.output
    repo, conn = _open_repo(db_path)
    try:
        assert len(repo.list_documents()) == 2
    finally:
        conn.close()


def test_index_batch_size_option(docs, db_path, embedder):
    result = _index(docs, db_path, "--batch-size", "2")
    assert result.exit_code == 0, result.output
    assert all(len(batch) <= 2 for batch in embedder.batches)


def test_index_skipped_file_keeps_success_status(docs, db_path, embedder):
    with (docs / "huge.txt").open("wb") as fh:
        fh.truncate(2 * 1024 * 1024)

    result = _index(docs, db_path, "--max-file-size-mb", "1")

    assert result.exit_code == 0, result.output
    assert "skipped" in result.output
    repo, conn = _open_repo(db_path)
    try:
        assert len(repo.list_documents()) == 2
    finally:
        conn.close()


def test_index_empty_directory(tmp_path, db_path, embedder):
    empty = tmp_path / "empty"
    empty.mkdir()
    result = _index(empty, db_path)
    assert result.exit_code == 0
    assert "No supported files" in result.output


# ------------------------------------------------------------------
# Fatal errors
# ------------------------------------------------------------------


def test_index_missing_input_dir(tmp_path, db_path, embedder):
    result = _index(tmp_path / "nope", db_path)
    assert result.exit_code == 1
    assert "Input directory not found" in result.output
    assert not db_path.exists()


def test_index_model_mismatch_writes_nothing(docs, db_path, embedder):
    repo, conn = _open_repo(db_path)
    repo.get_or_set_model_meta("model-A", 3)
    conn.close()
    embedder.model = "model-B"

    result = _index(docs, db_path)

    assert result.exit_code == 1
    assert "mismatch" in result.output.lower()
    repo, conn = _open_repo(db_path)
    try:
        assert repo.list_documents() == []
        assert repo.get_meta().embedding_model == "model-A"
    finally:
        conn.close()
    assert embedder.batches == []


def test_index_embedding_failure_exits_and_resumes(docs, db_path, embedder):
    embedder.fail_on_call = 1

    result = _index(docs, db_path)

    assert result.exit_code == 1
    assert "Embedding failed" in result.output
    repo, conn = _open_repo(db_path)
    try:
        assert len(repo.list_documents()) == 2
        assert repo.count_fragments_missing_embedding() > 0
    finally:
        conn.close()

    embedder.fail_on_call = None
    assert _index(docs, db_path).exit_code == 0
    repo, conn = _open_repo(db_path)
    try:
        assert repo.count_fragments_missing_embedding() == 0
    finally:
        conn.close()


def test_index_invalid_overlap_rejected(docs, db_path, embedder):
    result = _index(docs, db_path, "--chunk-size", "100", "--overlap", "100")
    assert result.exit_code == 1
    assert "overlap" in result.output


def test_index_without_api_key(docs, db_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    result = _index(docs, db_path, "--model", "openai/text-embedding-3-small")
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_index_unknown_local_model(docs, db_path):
    with patch.object(
        SentenceTransformerEmbedder,
        "model",
        new_callable=PropertyMock,
        side_effect=OSError("no-such-model is not a valid model identifier"),
    ):
        result = _index(docs, db_path, "--model", "local/no-such-model")
    assert result.exit_code == 1
    assert "Cannot load embedding model" in result.output
    assert not db_path.exists()


def test_index_unwritable_db_location(docs, tmp_path, embedder):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    result = _index(docs, blocker / "index.db")
    assert result.exit_code == 1
    assert "Database write failed" in result.output
