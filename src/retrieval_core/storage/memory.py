"""
In-memory collection store.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from .base import CollectionStatus, DocumentRecord
from .locks import LockRegistry
from ..errors import CollectionNotTrainedError, DimensionMismatchError

logger = logging.getLogger(__name__)


class CollectionStore:
    """
    Owns the document lists of every collection held in memory.

    Each collection's list is stored as an immutable tuple and swapped whole
    under that collection's write lock. Readers take the read lock and get the
    tuple itself, so a snapshot never changes underneath them.
    """

    def __init__(self) -> None:
        self._collections: dict[str, tuple[DocumentRecord, ...]] = {}
        self._locks = LockRegistry()
        self._ids_guard = threading.Lock()

    def replace(self, collection_id: str, documents: Iterable[DocumentRecord]) -> int:
        """Replace a collection's documents wholesale. Return the new count."""
        snapshot = tuple(documents)
        self._check_dimensions(snapshot)
        while True:
            lock = self._locks.get(collection_id)
            with lock.write():
                # drop() may have retired this lock while we waited for it.
                if self._locks.peek(collection_id) is not lock:
                    continue
                with self._ids_guard:
                    previous = self._collections.get(collection_id)
                    self._collections[collection_id] = snapshot
                break
        logger.debug(
            "Replaced collection %s: %d -> %d documents",
            collection_id,
            len(previous) if previous is not None else 0,
            len(snapshot),
        )
        return len(snapshot)

    def snapshot(self, collection_id: str) -> tuple[DocumentRecord, ...]:
        """Return the current documents, raising if the collection is empty or unknown."""
        lock = self._locks.peek(collection_id)
        if lock is None:
            raise CollectionNotTrainedError(collection_id)
        with lock.read(), self._ids_guard:
            documents = self._collections.get(collection_id)
        if not documents:
            raise CollectionNotTrainedError(collection_id)
        return documents

    def status(self, collection_id: str) -> CollectionStatus:
        documents = None
        lock = self._locks.peek(collection_id)
        if lock is not None:
            with lock.read(), self._ids_guard:
                documents = self._collections.get(collection_id)
        if documents is None:
            return CollectionStatus(
                collection_id=collection_id, exists=False, document_count=0
            )
        return CollectionStatus(
            collection_id=collection_id,
            exists=True,
            document_count=len(documents),
            dimensions=documents[0].dimensions if documents else None,
        )

    def drop(self, collection_id: str) -> bool:
        """Discard a collection. Return True if it was present."""
        lock = self._locks.peek(collection_id)
        if lock is None:
            return False
        with lock.write():
            with self._ids_guard:
                removed = self._collections.pop(collection_id, None)
            self._locks.discard(collection_id, lock)
        return removed is not None

    def list_collections(self) -> list[str]:
        with self._ids_guard:
            return sorted(self._collections)

    @staticmethod
    def _check_dimensions(documents: tuple[DocumentRecord, ...]) -> None:
        if not documents:
            return
        expected = documents[0].dimensions
        for document in documents[1:]:
            if document.dimensions != expected:
                raise DimensionMismatchError(
                    expected,
                    document.dimensions,
                    context=f"document {document.sequence_id}",
                )
