"""SQLite + sqlite-vec implementation of the ``Store`` capability.

Single interface for: model meta, documents, fragments, embedding updates and
cosine-distance search. Every write commits on its own unless it runs inside
``unit_of_work()``, in which case the whole unit commits or rolls back together.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from brainbase.db import vectors
from brainbase.db.models import Document, DocumentProgress, Fragment, MetaInfo
from brainbase.db.schema import CURRENT_VERSION
from brainbase.db.store import Store
from brainbase.errors import (
    DimensionMismatchError,
    DuplicatePathError,
    ModelMismatchError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)

_DOCUMENT_COLUMNS = "id, filename, path, format, length(data) AS size_bytes, created_at"
_FRAGMENT_COLUMNS = "id, document_id, fragment_order, content, embedding, created_at"


class Repository(Store):
    """Data access layer over an open sqlite3 connection.

    The connection is owned by the caller and must be closed after use. Open
    it with ``brainbase.db.connection.Database`` so sqlite-vec is loaded and
    the schema is current.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._depth = 0
        self._dimension: int | None = None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        except BaseException:
            if self._depth == 1:
                self._conn.rollback()
            raise
        else:
            if self._depth == 1:
                self._commit()
        finally:
            self._depth -= 1

    def _commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Commit failed: {exc}") from exc

    def _maybe_commit(self) -> None:
        if self._depth == 0:
            self._commit()

    def _write(self, sql: str, params: Sequence[object] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            if self._depth == 0:
                self._conn.rollback()
            raise StoreWriteError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------

    def get_meta(self) -> MetaInfo | None:
        rows = self._conn.execute("SELECT key, value FROM meta").fetchall()
        values = {r["key"]: r["value"] for r in rows}
        if "embedding_model" not in values:
            return None
        return MetaInfo(
            schema_version=int(values.get("schema_version", CURRENT_VERSION)),
            embedding_model=values["embedding_model"],
            embedding_dimension=int(values["embedding_dimension"]),
        )

    def get_or_set_model_meta(self, model_name: str, dimension: int) -> MetaInfo:
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")

        meta = self.get_meta()
        if meta is None:
            with self.unit_of_work():
                for key, value in (
                    ("schema_version", CURRENT_VERSION),
                    ("embedding_model", model_name),
                    ("embedding_dimension", dimension),
                ):
                    self._write(
                        "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                        (key, str(value)),
                    )
            logger.info("Recorded embedding model %s (%d dimensions)", model_name, dimension)
            meta = MetaInfo(CURRENT_VERSION, model_name, dimension)
        elif meta.embedding_model != model_name or meta.embedding_dimension != dimension:
            raise ModelMismatchError(
                meta.embedding_model, meta.embedding_dimension, model_name, dimension
            )
        else:
            logger.debug("Verified embedding model %s", model_name)

        self._dimension = meta.embedding_dimension
        return meta

    def _recorded_dimension(self) -> int:
        if self._dimension is None:
            meta = self.get_meta()
            if meta is None:
                raise StoreWriteError(
                    "No embedding model recorded; call get_or_set_model_meta() first."
                )
            self._dimension = meta.embedding_dimension
        return self._dimension

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def has_document(self, path: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM documents WHERE path = ?", (path,)
        ).fetchone()
        return row is not None

    def create_document(self, filename: str, path: str, format: str, data: bytes) -> str:
        document_id = str(uuid.uuid4())
        try:
            self._write(
                """
                INSERT INTO documents (id, filename, path, format, data)
                VALUES (?, ?, ?, ?, ?)
                """,
                (document_id, filename, path, format, data),
            )
        except sqlite3.IntegrityError as exc:
            if self._depth == 0:
                self._conn.rollback()
            if self.has_document(path):
                raise DuplicatePathError(path) from exc
            raise StoreWriteError(str(exc)) from exc
        self._maybe_commit()
        return document_id

    def list_documents(self) -> list[Document]:
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY rowid"
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def get_document_by_path(self, path: str) -> Document | None:
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE path = ?", (path,)
        ).fetchone()
        return _row_to_document(row) if row else None

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def create_fragments(self, document_id: str, contents: Sequence[str]) -> list[str]:
        ids = [str(uuid.uuid4()) for _ in contents]
        try:
            for order, (fragment_id, content) in enumerate(zip(ids, contents)):
                self._write(
                    """
                    INSERT INTO fragments (id, document_id, fragment_order, content)
                    VALUES (?, ?, ?, ?)
                    """,
                    (fragment_id, document_id, order, content),
                )
        except sqlite3.IntegrityError as exc:
            if self._depth == 0:
                self._conn.rollback()
            raise StoreWriteError(
                f"Could not store fragments for document {document_id}: {exc}"
            ) from exc
        self._maybe_commit()
        return ids

    def get_fragments(self, document_id: str) -> list[Fragment]:
        rows = self._conn.execute(
            f"""
            SELECT {_FRAGMENT_COLUMNS} FROM fragments
            WHERE document_id = ? ORDER BY fragment_order
            """,
            (document_id,),
        ).fetchall()
        return [_row_to_fragment(r) for r in rows]

    def document_progress(self) -> list[DocumentProgress]:
        rows = self._conn.execute(
            """
            SELECT d.id, d.filename, d.path, d.format,
                   length(d.data) AS size_bytes, d.created_at,
                   COUNT(f.id) AS fragments,
                   COALESCE(SUM(CASE WHEN f.id IS NOT NULL AND f.embedding IS NULL
                                     THEN 1 ELSE 0 END), 0) AS missing
            FROM documents d
            LEFT JOIN fragments f ON f.document_id = d.id
            GROUP BY d.id
            ORDER BY d.rowid
            """
        ).fetchall()
        return [
            DocumentProgress(
                document=_row_to_document(r),
                fragments=r["fragments"],
                missing=r["missing"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    def fragments_missing_embedding(self, limit: int) -> list[tuple[str, str]]:
        rows = self._conn.execute(
            """
            SELECT f.id, f.content
            FROM fragments f
            JOIN documents d ON d.id = f.document_id
            WHERE f.embedding IS NULL
            ORDER BY d.rowid, f.fragment_order
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        return [(r["id"], r["content"]) for r in rows]

    def count_fragments_missing_embedding(self) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM fragments WHERE embedding IS NULL"
        ).fetchone()[0]

    def set_embedding(self, fragment_id: str, embedding: Sequence[float]) -> None:
        expected = self._recorded_dimension()
        if len(embedding) != expected:
            raise DimensionMismatchError(expected, len(embedding))
        self._update_embedding(fragment_id, vectors.serialize(list(embedding)))

    def mark_embedding_empty(self, fragment_id: str) -> None:
        self._update_embedding(fragment_id, vectors.EMPTY_MARKER)

    def _update_embedding(self, fragment_id: str, blob: bytes) -> None:
        cur = self._write(
            "UPDATE fragments SET embedding = ? WHERE id = ?", (blob, fragment_id)
        )
        if cur.rowcount == 0:
            raise StoreWriteError(f"Unknown fragment: {fragment_id}")
        self._maybe_commit()

    def search_similar(
        self, embedding: Sequence[float], limit: int = 5
    ) -> list[tuple[Fragment, float]]:
        expected = self._recorded_dimension()
        if len(embedding) != expected:
            raise DimensionMismatchError(expected, len(embedding))
        rows = self._conn.execute(
            f"""
            SELECT {_FRAGMENT_COLUMNS},
                   vec_distance_cosine(embedding, ?) AS distance
            FROM fragments
            WHERE embedding IS NOT NULL AND length(embedding) > 0
            ORDER BY distance
            LIMIT ?
            """,
            (vectors.serialize(list(embedding)), limit),
        ).fetchall()
        return [(_row_to_fragment(r), r["distance"]) for r in rows]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        filename=row["filename"],
        path=row["path"],
        format=row["format"],
        size_bytes=row["size_bytes"],
        created_at=row["created_at"],
    )


def _row_to_fragment(row: sqlite3.Row) -> Fragment:
    return Fragment(
        id=row["id"],
        document_id=row["document_id"],
        order=row["fragment_order"],
        content=row["content"],
        embedding=vectors.deserialize(row["embedding"]),
        created_at=row["created_at"],
    )
