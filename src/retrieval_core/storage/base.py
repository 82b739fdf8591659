"""
Storage interfaces and data models for collection state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DocumentRecord:
    """An embedded chunk stored in a collection."""

    sequence_id: int
    text: str
    embedding: tuple[float, ...]

    @property
    def dimensions(self) -> int:
        return len(self.embedding)


@dataclass(frozen=True)
class CollectionStatus:
    """Point-in-time summary of a collection."""

    collection_id: str
    exists: bool
    document_count: int
    dimensions: int | None = None


class IndexBackend(Protocol):
    """Protocol for durable collection persistence."""

    def save_collection(
        self,
        collection_id: str,
        documents: list[DocumentRecord],
        *,
        dimensions: int,
    ) -> None:
        """Persist the full ordered document list for a collection."""

    def load_collection(
        self,
        collection_id: str,
        *,
        dimensions: int,
    ) -> list[DocumentRecord]:
        """Return the persisted document list for a collection."""

    def list_collections(self) -> list[str]:
        """List persisted collection ids."""

    def delete_collection(self, collection_id: str) -> bool:
        """Delete a persisted collection. Return True if it existed."""
