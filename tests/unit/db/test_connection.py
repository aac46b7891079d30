"""Tests for opening the index database."""

from __future__ import annotations

import sqlite3

import pytest

from brainbase.db.connection import Database
from brainbase.db.repository import Repository
from brainbase.db.schema import CURRENT_VERSION
from brainbase.errors import StoreWriteError


def _tables(conn) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {r["name"] for r in rows}


# ------------------------------------------------------------------
# Ready-to-use connection
# ------------------------------------------------------------------


def test_connect_creates_missing_parent_directories(tmp_path):
    db_path = tmp_path / "out" / "nested" / "index.db"
    with Database(db_path):
        pass
    assert db_path.is_file()


def test_connect_migrates_schema(tmp_path):
    with Database(tmp_path / "index.db") as conn:
        assert {"meta", "documents", "fragments"} <= _tables(conn)
        version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == CURRENT_VERSION


def test_repository_usable_straight_after_connect(tmp_path):
    with Database(tmp_path / "index.db") as conn:
        repo = Repository(conn)
        meta = repo.get_or_set_model_meta("test/fake-embedder", 3)
        assert meta.schema_version == CURRENT_VERSION


def test_reconnect_keeps_existing_data(tmp_path):
    db_path = tmp_path / "index.db"
    with Database(db_path) as conn:
        Repository(conn).create_document("a.txt", "/docs/a.txt", "text", b"a")
    with Database(db_path) as conn:
        assert Repository(conn).has_document("/docs/a.txt")


def test_migrate_false_leaves_database_bare(tmp_path):
    with Database(tmp_path / "bare.db", migrate=False) as conn:
        assert _tables(conn) == set()


def test_cosine_distance_available(tmp_path):
    with Database(tmp_path / "index.db") as conn:
        distance = conn.execute(
            "SELECT vec_distance_cosine(vec_f32('[1, 0]'), vec_f32('[0, 1]'))"
        ).fetchone()[0]
    assert distance == pytest.approx(1.0)


def test_cascade_delete_enforced(tmp_path):
    with Database(tmp_path / "index.db") as conn:
        repo = Repository(conn)
        doc = repo.create_document("a.txt", "/docs/a.txt", "text", b"a")
        repo.create_fragments(doc, ["Only fragment here."])
        conn.execute("DELETE FROM documents WHERE id = ?", (doc,))
        assert conn.execute("SELECT COUNT(*) FROM fragments").fetchone()[0] == 0


def test_context_manager_closes_connection(tmp_path):
    with Database(tmp_path / "index.db") as conn:
        pass
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


# ------------------------------------------------------------------
# Failures
# ------------------------------------------------------------------


def test_parent_is_a_file_raises_store_write_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    with pytest.raises(StoreWriteError, match="Cannot open database"):
        Database(blocker / "index.db").connect()


def test_corrupt_file_raises_store_write_error(tmp_path):
    db_path = tmp_path / "garbage.db"
    db_path.write_bytes(b"this is not a sqlite database" * 100)
    with pytest.raises(StoreWriteError):
        Database(db_path).connect()
