"""Tests for brainbase status, search, config and version commands."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from brainbase.cli.main import app
from brainbase.db.connection import Database
from brainbase.db.repository import Repository

runner = CliRunner()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_db(path: Path) -> sqlite3.Connection:
    return Database(path).connect()


@pytest.fixture
def populated_db(tmp_path: Path) -> Path:
    """manual.txt fully embedded, notes.txt waiting for embeddings."""
    path = tmp_path / "index.db"
    conn = _make_db(path)
    repo = Repository(conn)
    repo.get_or_set_model_meta("test/fake-embedder", 3)

    manual = repo.create_document("manual.txt", "/docs/manual.txt", "text", b"m")
    ids = repo.create_fragments(manual, ["Turn the valve clockwise.", "Check the gauge."])
    repo.set_embedding(ids[0], [1.0, 0.0, 0.0])
    repo.set_embedding(ids[1], [0.0, 1.0, 0.0])

    notes = repo.create_document("notes.txt", "/docs/notes.txt", "text", b"n")
    repo.create_fragments(notes, ["Pending fragment."])
    conn.close()
    return path


# ---------------------------------------------------------------------------
# brainbase --version / version
# ---------------------------------------------------------------------------


def test_version_flag_exits_zero() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "brainbase" in result.output.lower()


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.output.startswith("brainbase ")


# ---------------------------------------------------------------------------
# brainbase status
# ---------------------------------------------------------------------------


def test_status_without_db(tmp_path: Path) -> None:
    result = runner.invoke(app, ["status", "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 1
    assert "No database found" in result.output


def test_status_shows_model_and_documents(populated_db: Path) -> None:
    result = runner.invoke(app, ["status", "--db", str(populated_db)])
    assert result.exit_code == 0, result.output
    assert "test/fake-embedder" in result.output
    assert "manual.txt" in result.output
    assert "notes.txt" in result.output
    assert "fully embedded" in result.output
    assert "text extracted" in result.output


def test_status_empty_db(tmp_path: Path) -> None:
    path = tmp_path / "empty.db"
    _make_db(path).close()
    result = runner.invoke(app, ["status", "--db", str(path)])
    assert result.exit_code == 0
    assert "No documents indexed yet" in result.output


# ---------------------------------------------------------------------------
# brainbase search
# ---------------------------------------------------------------------------


def test_search_returns_nearest_fragment(populated_db: Path, fake_embedder) -> None:
    with patch("brainbase.cli.search.make_embedder", return_value=fake_embedder) as mock_make:
        with patch.object(fake_embedder, "embed_batch", return_value=[[0.9, 0.1, 0.0]]):
            result = runner.invoke(app, ["search", "valve", "--db", str(populated_db), "-n", "1"])

    assert result.exit_code == 0, result.output
    mock_make.assert_called_once_with("test/fake-embedder", 3)
    assert "Turn the valve clockwise." in result.output
    assert "Check the gauge." not in result.output
    assert "Pending fragment." not in result.output


def test_search_without_index(tmp_path: Path) -> None:
    path = tmp_path / "empty.db"
    _make_db(path).close()
    result = runner.invoke(app, ["search", "anything", "--db", str(path)])
    assert result.exit_code == 1
    assert "Nothing indexed yet" in result.output


def test_search_wrong_query_dimension_reported(populated_db: Path, fake_embedder) -> None:
    with patch("brainbase.cli.search.make_embedder", return_value=fake_embedder):
        with patch.object(fake_embedder, "embed_batch", return_value=[[0.9, 0.1]]):
            result = runner.invoke(app, ["search", "valve", "--db", str(populated_db)])
    assert result.exit_code == 1
    assert "Embedding has 2 dimensions" in result.output


# ---------------------------------------------------------------------------
# brainbase config
# ---------------------------------------------------------------------------


def test_config_shows_effective_settings(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BRAINBASE_BATCH_SIZE", raising=False)
    (tmp_path / "brainbase.yaml").write_text("chunking:\n  chunk_size: 640\n", encoding="utf-8")
    result = runner.invoke(app, ["config", "--global-config", str(tmp_path / "none.yaml")])
    assert result.exit_code == 0, result.output
    assert "chunk_size: 640" in result.output
    assert "batch_size: 50" in result.output


def test_config_init_creates_global_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "home" / "config.yaml"
    result = runner.invoke(app, ["config", "--init", "--global-config", str(target)])
    assert result.exit_code == 0, result.output
    assert target.exists()


def test_config_invalid_value_reported(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "brainbase.yaml").write_text("embedding:\n  batch_size: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["config", "--global-config", str(tmp_path / "none.yaml")])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
