"""brainbase database layer."""

from brainbase.db.connection import Database
from brainbase.db.migrations import MIGRATIONS, run_migrations
from brainbase.db.repository import Repository
from brainbase.db.schema import initialize
from brainbase.db.store import Store

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "Repository",
    "Store",
]
