"""
Chunking utilities for training text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..config import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_WORDS,
    ENV_CHUNK_OVERLAP,
    ENV_CHUNK_WORDS,
    env_int,
)

_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
_WORD_SPLIT_RE = re.compile(r"\s+")
_MIN_SENTENCE_CHARS = 10


@dataclass(frozen=True)
class TextChunk:
    """A content chunk with its position in the source text."""

    text: str
    position: int
    word_count: int


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(_WORD_SPLIT_RE.split(text))


def split_sentences(text: str) -> list[str]:
    """Split on terminal punctuation and drop fragments of ten characters or fewer."""
    normalized = text.replace("\r\n", "\n")
    sentences = (part.strip() for part in _SENTENCE_BOUNDARY_RE.split(normalized))
    return [sentence for sentence in sentences if len(sentence) > _MIN_SENTENCE_CHARS]


class SentenceChunker:
    """
    Sentence-packing chunker with a one-sentence overlap.

    Sentences are packed greedily until the next one would push the chunk past
    ``chunk_size`` words; the following chunk then starts with the last
    sentence of the one just closed.
    """

    def __init__(
        self,
        chunk_size: int | None = None,
        overlap: int | None = None,
    ) -> None:
        if chunk_size is None:
            chunk_size = env_int(ENV_CHUNK_WORDS, DEFAULT_CHUNK_WORDS)
        if overlap is None:
            overlap = env_int(ENV_CHUNK_OVERLAP, DEFAULT_CHUNK_OVERLAP)
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        if overlap < 0:
            raise ValueError("overlap must be >= 0")

        self.chunk_size = chunk_size
        # Accepted for interface compatibility; overlap is always one sentence.
        self.overlap = overlap

    def chunk_text(self, text: str) -> list[TextChunk]:
        """
        Split text into overlapping chunks of whole sentences.
        """
        fallback = text.strip()
        if not fallback:
            return []

        sentences = split_sentences(text)
        if not sentences:
            return [self._make_chunk(fallback, 0)]

        packed: list[list[str]] = []
        current: list[str] = []
        current_words = 0

        for sentence in sentences:
            words = count_words(sentence)
            if current and current_words + words > self.chunk_size:
                packed.append(current)
                current = [current[-1]]
                current_words = count_words(current[0])
            current.append(sentence)
            current_words += words

        if current:
            packed.append(current)

        chunks = [
            self._make_chunk(" ".join(group), position)
            for position, group in enumerate(packed)
        ]
        if not chunks:
            chunks.append(self._make_chunk(fallback, 0))
        return chunks

    @staticmethod
    def _make_chunk(text: str, position: int) -> TextChunk:
        return TextChunk(text=text, position=position, word_count=count_words(text))


def chunk_text(
    text: str,
    target_words: int = DEFAULT_CHUNK_WORDS,
    overlap_hint: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Return the chunk texts for *text* using a :class:`SentenceChunker`."""
    chunker = SentenceChunker(chunk_size=target_words, overlap=overlap_hint)
    return [chunk.text for chunk in chunker.chunk_text(text)]
