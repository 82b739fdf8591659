"""
Retrieval engine facade.

Ties together chunking, embedding, the collection store, ranking and
persistence behind the operations callers use: train, search, status, save
and load.
"""

from __future__ import annotations

import logging
import os
from typing import IO, Union

from .embeddings import HashingEmbedder
from .errors import SerializationError
from .indexing import SentenceChunker, TrainingPipeline, TrainingResult
from .search import SearchHit, SemanticSearchEngine
from .storage import (
    CollectionStatus,
    CollectionStore,
    DocumentRecord,
    IndexBackend,
    JsonIndexSerializer,
    write_atomic,
)

logger = logging.getLogger(__name__)

PathOrStream = Union[str, os.PathLike, IO[bytes]]


class RetrievalEngine:
    """In-process semantic retrieval over named collections."""

    def __init__(
        self,
        store: CollectionStore | None = None,
        *,
        embedder: HashingEmbedder | None = None,
        chunker: SentenceChunker | None = None,
        serializer: JsonIndexSerializer | None = None,
    ) -> None:
        self.store = store or CollectionStore()
        self.embedder = embedder or HashingEmbedder()
        self.chunker = chunker or SentenceChunker()
        self.serializer = serializer or JsonIndexSerializer()
        self._pipeline = TrainingPipeline(
            self.store, chunker=self.chunker, embedder=self.embedder
        )
        self._search = SemanticSearchEngine(self.store, self.embedder)

    @property
    def dimensions(self) -> int:
        return self.embedder.dim

    def train(self, collection_id: str, text: str) -> TrainingResult:
        """Index *text* into *collection_id*, replacing any previous contents."""
        return self._pipeline.train(collection_id, text)

    def search(self, collection_id: str, query: str, top_k: int = 5) -> list[SearchHit]:
        """Return up to *top_k* passages ranked by cosine similarity to *query*."""
        return self._search.search(collection_id=collection_id, query=query, limit=top_k)

    def status(self, collection_id: str) -> CollectionStatus:
        return self.store.status(collection_id)

    def drop(self, collection_id: str) -> bool:
        return self.store.drop(collection_id)

    def list_collections(self) -> list[str]:
        return self.store.list_collections()

    def save(self, collection_id: str, destination: PathOrStream) -> None:
        """Serialize a collection to a path or writable binary stream."""
        documents = list(self.store.snapshot(collection_id))
        if isinstance(destination, (str, os.PathLike)):
            data = self.serializer.dumps(
                collection_id, documents, dimensions=self.dimensions
            )
            write_atomic(destination, data)
        else:
            self.serializer.dump(
                collection_id, documents, destination, dimensions=self.dimensions
            )
        logger.info("Index saved: %s (%d docs)", collection_id, len(documents))

    def load(self, collection_id: str, source: PathOrStream) -> int:
        """Replace a collection with the documents read from *source*.

        Sequence ids and embeddings are kept verbatim. Returns the document count.
        """
        if isinstance(source, (str, os.PathLike)):
            try:
                with open(source, "rb") as handle:
                    documents = self.serializer.load(
                        handle, collection_id=collection_id, dimensions=self.dimensions
                    )
            except OSError as exc:
                raise SerializationError(f"Failed to read {source}: {exc}") from exc
        else:
            documents = self.serializer.load(
                source, collection_id=collection_id, dimensions=self.dimensions
            )
        return self._replace_loaded(collection_id, documents)

    def persist(self, collection_id: str, backend: IndexBackend) -> None:
        """Write a collection to a durable backend."""
        documents = list(self.store.snapshot(collection_id))
        backend.save_collection(collection_id, documents, dimensions=self.dimensions)

    def restore(self, collection_id: str, backend: IndexBackend) -> int:
        """Replace a collection with its copy from a durable backend."""
        documents = backend.load_collection(collection_id, dimensions=self.dimensions)
        return self._replace_loaded(collection_id, documents)

    def _replace_loaded(self, collection_id: str, documents: list[DocumentRecord]) -> int:
        if not documents:
            raise SerializationError(
                f"Persisted index for {collection_id!r} contains no documents"
            )
        count = self.store.replace(collection_id, documents)
        logger.info("Index loaded: %s (%d docs)", collection_id, count)
        return count
