"""Search helpers for trained collections."""

from .context import format_context, source_previews
from .ranker import SearchHit, cosine_similarity, rank_hits
from .semantic import SemanticSearchEngine

__all__ = [
    "format_context",
    "source_previews",
    "SearchHit",
    "cosine_similarity",
    "rank_hits",
    "SemanticSearchEngine",
]
