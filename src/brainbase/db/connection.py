"""Opening the index database: sqlite-vec loaded, schema migrated."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec

from brainbase.db.schema import initialize
from brainbase.errors import StoreWriteError


class Database:
    """The single-file SQLite index.

    ``connect()`` hands back a connection that ``Repository`` can use as is:
    the parent directory exists, sqlite-vec's distance functions are loaded,
    foreign keys are enforced, the journal is in WAL mode and the schema is
    at the current version. Anything that stops the database from opening
    is raised as ``StoreWriteError``.

    Args:
        db_path: Database file; created together with missing parent
            directories.
        migrate: Bring the schema up to date on connect. Only the migration
            tests open a bare database.
    """

    def __init__(self, db_path: Path | str, *, migrate: bool = True) -> None:
        self.db_path = Path(db_path)
        self.migrate = migrate
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        except (OSError, sqlite3.Error) as exc:
            raise StoreWriteError(f"Cannot open database {self.db_path}: {exc}") from exc

        try:
            conn.row_factory = sqlite3.Row
            conn.enable_load_extension(True)
            sqlite_vec.load(conn)
            conn.enable_load_extension(False)
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            if self.migrate:
                initialize(conn)
        except sqlite3.Error as exc:
            conn.close()
            raise StoreWriteError(f"Cannot prepare database {self.db_path}: {exc}") from exc
        return conn

    def __enter__(self) -> sqlite3.Connection:
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
