"""Embedding blob encoding for the fragments table.

Embeddings are stored as float32 blobs (sqlite-vec's native vector format) so
that ``vec_distance_cosine()`` can rank them directly. ``NULL`` means "not yet
embedded"; a zero-length blob marks a fragment that will never be embedded.
"""

from __future__ import annotations

import struct

import sqlite_vec

EMPTY_MARKER = b""


def serialize(embedding: list[float]) -> bytes:
    """Encode *embedding* as a float32 blob. Raises ValueError on an empty vector."""
    if not embedding:
        raise ValueError("embedding must have at least one dimension")
    return sqlite_vec.serialize_float32(list(embedding))


def deserialize(blob: bytes | None) -> list[float] | None:
    """Decode a stored blob. ``None`` stays ``None``; the empty marker becomes ``[]``."""
    if blob is None:
        return None
    if len(blob) % 4:
        raise ValueError(f"corrupt embedding blob of {len(blob)} bytes")
    return list(struct.unpack(f"{len(blob) // 4}f", blob))
