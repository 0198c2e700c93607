"""Embedding vector helpers: storage literal encoding and cosine similarity.

Segments store their embedding as a bracketed, comma-separated literal
(``[0.1,0.2,0.3]``), the text form pgvector accepts.  Floats are written
with :func:`repr` so that parsing the literal back yields bit-identical
values; similarity search downstream depends on that round trip.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def format_vector(vector: Sequence[float]) -> str:
    """Encode *vector* as ``[v1,v2,...]`` with no spaces."""
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


def parse_vector(literal: str) -> list[float]:
    """Decode a literal produced by :func:`format_vector`.

    Raises
    ------
    ValueError
        If *literal* is not bracketed or contains a non-numeric component.
    """
    stripped = literal.strip()
    if not (stripped.startswith("[") and stripped.endswith("]")):
        msg = f"Vector literal must be bracketed, got {literal[:40]!r}"
        raise ValueError(msg)
    body = stripped[1:-1].strip()
    if not body:
        return []
    return [float(part) for part in body.split(",")]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of two equal-length vectors.

    Zero vectors have no direction; their similarity is reported as ``0.0``.
    """
    if len(a) != len(b):
        msg = f"Vectors must have the same length ({len(a)} != {len(b)})"
        raise ValueError(msg)
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)
