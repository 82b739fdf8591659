"""
Error types raised by the retrieval engine.
"""

from __future__ import annotations


class RetrievalError(Exception):
    """Base class for all retrieval engine errors."""


class EmptyInputError(RetrievalError, ValueError):
    """Raised when training text is blank or produces no chunks."""


class NoDocumentsIndexedError(RetrievalError):
    """Raised when every chunk of a training run failed to embed."""


class CollectionNotTrainedError(RetrievalError, LookupError):
    """Raised when a collection id has no documents."""

    def __init__(self, collection_id: str) -> None:
        super().__init__(f"Collection {collection_id!r} has not been trained")
        self.collection_id = collection_id


class DimensionMismatchError(RetrievalError, ValueError):
    """Raised when two embeddings (or an index and an engine) disagree on length."""

    def __init__(self, expected: int, actual: int, *, context: str = "embedding") -> None:
        super().__init__(
            f"{context} has {actual} dimensions, expected {expected}"
        )
        self.expected = expected
        self.actual = actual


class SerializationError(RetrievalError):
    """Raised when a persisted index cannot be written or read back."""
