"""
Vector-based semantic search over an in-memory collection.

Embeds a query and scores it against every stored chunk embedding via cosine
similarity (exact linear scan).
"""

from __future__ import annotations

import logging

from .ranker import SearchHit, cosine_similarity, rank_hits
from ..embeddings import HashingEmbedder
from ..errors import DimensionMismatchError
from ..storage import CollectionStore

logger = logging.getLogger(__name__)


class SemanticSearchEngine:
    """Embed a query and search stored chunk embeddings."""

    def __init__(
        self,
        store: CollectionStore,
        embedder: HashingEmbedder,
    ) -> None:
        self.store = store
        self.embedder = embedder

    def search(
        self,
        *,
        collection_id: str,
        query: str,
        limit: int = 5,
    ) -> list[SearchHit]:
        """Return ranked chunk hits using vector cosine similarity."""
        documents = self.store.snapshot(collection_id)
        query_embedding = self.embedder.embed_query(query)

        stored_dimensions = documents[0].dimensions
        if len(query_embedding) != stored_dimensions:
            raise DimensionMismatchError(
                stored_dimensions, len(query_embedding), context="query embedding"
            )

        logger.debug(
            "Searching %d documents in %s for: %r",
            len(documents),
            collection_id,
            query[:60],
        )
        hits = [
            SearchHit(
                sequence_id=doc.sequence_id,
                text=doc.text,
                score=cosine_similarity(query_embedding, doc.embedding),
            )
            for doc in documents
        ]
        ranked = rank_hits(hits, limit=limit)
        logger.debug(
            "Search results: %s",
            ", ".join(f"[{i + 1}] {hit.score:.3f}" for i, hit in enumerate(ranked)),
        )
        return ranked
