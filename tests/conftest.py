from __future__ import annotations

import pytest

from retrieval_core import RetrievalEngine, SentenceChunker


@pytest.fixture
def engine() -> RetrievalEngine:
    return RetrievalEngine()


@pytest.fixture
def small_chunk_engine() -> RetrievalEngine:
    # 13 words fits exactly two of the six-word numbered sentences.
    return RetrievalEngine(chunker=SentenceChunker(chunk_size=13))
