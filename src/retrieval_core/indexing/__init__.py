"""Training components for retrieval_core."""

from .chunker import SentenceChunker, TextChunk, chunk_text
from .pipeline import TrainingPipeline, TrainingResult

__all__ = [
    "SentenceChunker",
    "TextChunk",
    "chunk_text",
    "TrainingPipeline",
    "TrainingResult",
]
