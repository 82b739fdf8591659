"""
Deterministic hash-based embeddings.

Maps text to a fixed-dimension, L2-normalized bag-of-words fingerprint using
three independent string hashes per token. No model weights and no network
calls: the same text and dimension always yield the same vector, in any
process, so persisted indexes stay comparable with freshly embedded queries.
"""

from __future__ import annotations

import math
import re
from concurrent.futures import ThreadPoolExecutor

from .config import (
    DEFAULT_DIM,
    DEFAULT_MAX_WORKERS,
    ENV_EMBEDDING_DIM,
    ENV_MAX_WORKERS,
    env_int,
)

# ASCII word characters only; anything else separates tokens.
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")

_HASH_PASSES = 3
_HASH_SEED = 7919
_SPREAD = 2
_MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation and drop tokens of two characters or fewer."""
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    if not cleaned:
        return []
    return [token for token in cleaned.split(" ") if len(token) >= _MIN_TOKEN_LENGTH]


def token_hash(token: str, seed: int) -> int:
    """Fold *token* into a signed 32-bit hash: ``h = h * 31 + ord(ch)``."""
    value = seed
    for char in token:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
        if value >= 0x80000000:
            value -= 0x100000000
    return value


def embed(text: str, dimensions: int = DEFAULT_DIM) -> list[float]:
    """Embed *text* into an L2-normalized vector of length *dimensions*.

    Returns the all-zero vector when no token survives filtering.
    """
    if dimensions < 1:
        raise ValueError("dimensions must be >= 1")

    tokens = tokenize(text)
    vector = [0.0] * dimensions
    if not tokens:
        return vector

    for index, token in enumerate(tokens):
        weight = 1.0 / math.sqrt(index + 1)
        for hash_pass in range(_HASH_PASSES):
            bucket = abs(token_hash(token, hash_pass * _HASH_SEED)) % dimensions
            vector[bucket] += weight
            for offset in range(1, _SPREAD + 1):
                vector[(bucket - offset) % dimensions] += weight / (offset + 1)
                vector[(bucket + offset) % dimensions] += weight / (offset + 1)

    # Plain left-to-right accumulation; sum() uses compensated summation on 3.12+.
    squares = 0.0
    for value in vector:
        squares += value * value
    norm = math.sqrt(squares)
    if norm == 0:
        return vector
    return [value / norm for value in vector]


class HashingEmbedder:
    """Generate text embeddings with the deterministic multi-hash scheme."""

    def __init__(
        self,
        *,
        dim: int | None = None,
        max_workers: int | None = None,
    ) -> None:
        if dim is None:
            dim = env_int(ENV_EMBEDDING_DIM, DEFAULT_DIM)
        if max_workers is None:
            max_workers = env_int(ENV_MAX_WORKERS, DEFAULT_MAX_WORKERS)
        if dim < 1:
            raise ValueError("dim must be >= 1")
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self.dim = dim
        self.max_workers = max_workers

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts in parallel.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        if len(texts) <= 1 or self.max_workers == 1:
            return [self.embed_query(text) for text in texts]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self.embed_query, texts))

    def embed_query(self, query: str) -> list[float]:
        """Embed a single text."""
        return embed(query, self.dim)
