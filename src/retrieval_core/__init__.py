"""
retrieval_core - in-process semantic retrieval over hash-based embeddings.

This package chunks raw text into overlapping passages, embeds them with a
deterministic multi-hash scheme (no model weights, no network calls), keeps
them per named collection, and ranks them against queries by cosine
similarity. Collections can be persisted to JSON or DuckDB and loaded back
bit-for-bit.

Example usage:
    >>> from retrieval_core import RetrievalEngine
    >>> engine = RetrievalEngine()
    >>> engine.train("doc1", "Cats are small mammals. Cats sleep most of the day.")
    >>> hits = engine.search("doc1", "Tell me about cats", top_k=3)
"""

from .embeddings import HashingEmbedder, embed
from .engine import RetrievalEngine
from .errors import (
    CollectionNotTrainedError,
    DimensionMismatchError,
    EmptyInputError,
    NoDocumentsIndexedError,
    RetrievalError,
    SerializationError,
)
from .indexing import SentenceChunker, TextChunk, TrainingPipeline, TrainingResult, chunk_text
from .search import SearchHit, cosine_similarity, format_context, source_previews
from .storage import (
    CollectionStatus,
    CollectionStore,
    DocumentRecord,
    DuckDBIndexStore,
    JsonIndexSerializer,
    JsonIndexStore,
)

__all__ = [
    # Engine
    "RetrievalEngine",
    # Embedding and chunking
    "HashingEmbedder",
    "embed",
    "SentenceChunker",
    "TextChunk",
    "chunk_text",
    "TrainingPipeline",
    "TrainingResult",
    # Search
    "SearchHit",
    "cosine_similarity",
    "format_context",
    "source_previews",
    # Storage
    "CollectionStatus",
    "CollectionStore",
    "DocumentRecord",
    "DuckDBIndexStore",
    "JsonIndexSerializer",
    "JsonIndexStore",
    # Errors
    "RetrievalError",
    "EmptyInputError",
    "NoDocumentsIndexedError",
    "CollectionNotTrainedError",
    "DimensionMismatchError",
    "SerializationError",
]
