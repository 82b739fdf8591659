"""
Training pipeline orchestration.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from .chunker import SentenceChunker, TextChunk
from ..embeddings import HashingEmbedder
from ..errors import EmptyInputError, NoDocumentsIndexedError
from ..storage import CollectionStore, DocumentRecord

logger = logging.getLogger(__name__)

_PROGRESS_EVERY = 20


@dataclass(frozen=True)
class TrainingResult:
    """Summary output for a training run."""

    collection_id: str
    documents_count: int
    avg_chunk_length: float
    skipped_chunks: int = 0
    chunks_total: int = 0


class TrainingPipeline:
    """Chunk, embed and index text into a collection, replacing what was there."""

    def __init__(
        self,
        store: CollectionStore,
        chunker: SentenceChunker | None = None,
        embedder: HashingEmbedder | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.store = store
        self.chunker = chunker or SentenceChunker()
        self.embedder = embedder or HashingEmbedder()
        if max_workers is None:
            max_workers = self.embedder.max_workers
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._max_workers = max_workers

    def train(self, collection_id: str, text: str) -> TrainingResult:
        if not text or not text.strip():
            raise EmptyInputError("Training text is empty")

        logger.info(
            "Starting training for collection %s (%d characters)",
            collection_id,
            len(text),
        )
        chunks = self.chunker.chunk_text(text)
        if not chunks:
            raise EmptyInputError(
                "No valid chunks created. Text might be too short or improperly formatted."
            )
        logger.info("Created %d text chunks", len(chunks))

        documents, skipped = self._embed_chunks(chunks)
        if not documents:
            raise NoDocumentsIndexedError(
                f"Failed to embed any of {len(chunks)} chunks for {collection_id!r}"
            )

        self.store.replace(collection_id, documents)
        avg_words = sum(chunk.word_count for chunk in chunks) / len(chunks)
        logger.info(
            "Training complete for %s: %d documents indexed, %d skipped",
            collection_id,
            len(documents),
            skipped,
        )
        return TrainingResult(
            collection_id=collection_id,
            documents_count=len(documents),
            avg_chunk_length=round(avg_words, 2),
            skipped_chunks=skipped,
            chunks_total=len(chunks),
        )

    def _embed_chunks(self, chunks: list[TextChunk]) -> tuple[list[DocumentRecord], int]:
        """Embed chunks in parallel. Failed chunks are skipped, survivors renumbered."""
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures: list[Future[list[float]]] = [
                executor.submit(self.embedder.embed_query, chunk.text) for chunk in chunks
            ]

            documents: list[DocumentRecord] = []
            skipped = 0
            for index, (chunk, future) in enumerate(zip(chunks, futures)):
                try:
                    embedding = future.result()
                except Exception as exc:
                    skipped += 1
                    logger.warning(
                        "Error processing chunk %d: %s", chunk.position, exc
                    )
                    continue

                documents.append(
                    DocumentRecord(
                        sequence_id=len(documents),
                        text=chunk.text,
                        embedding=tuple(embedding),
                    )
                )
                if (index + 1) % _PROGRESS_EVERY == 0 or index == len(chunks) - 1:
                    logger.info("Processed %d/%d chunks", index + 1, len(chunks))

        return documents, skipped
