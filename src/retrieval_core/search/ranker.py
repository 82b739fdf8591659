"""
Similarity scoring and result ordering.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import DimensionMismatchError


@dataclass(frozen=True)
class SearchHit:
    """A ranked passage returned by a query."""

    sequence_id: int
    text: str
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``, or 0.0 when either norm is zero."""
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b), context="compared vector")

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0
    # sqrt of the product keeps cosine_similarity(a, a) exactly 1.0.
    denominator = math.sqrt(norm_a * norm_b)
    if denominator == 0 or math.isinf(denominator):
        denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    score = dot / denominator
    return max(-1.0, min(1.0, score))


def rank_hits(hits: list[SearchHit], *, limit: int) -> list[SearchHit]:
    """Sort by descending score, ties by ascending sequence id, and apply limit."""
    if limit <= 0:
        return []
    ordered = sorted(hits, key=lambda hit: (-hit.score, hit.sequence_id))
    return ordered[:limit]
