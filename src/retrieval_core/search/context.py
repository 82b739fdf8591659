"""
Helpers that shape ranked passages for a prompt-building caller.
"""

from __future__ import annotations

from typing import Any

from .ranker import SearchHit


def format_context(hits: list[SearchHit]) -> str:
    """Render hits as numbered ``[Source n]`` blocks separated by blank lines."""
    return "\n\n".join(
        f"[Source {index}]:\n{hit.text}" for index, hit in enumerate(hits, start=1)
    )


def source_previews(hits: list[SearchHit], *, max_chars: int = 250) -> list[dict[str, Any]]:
    """Return short citations for each hit, truncating long passages with ``...``."""
    previews: list[dict[str, Any]] = []
    for index, hit in enumerate(hits, start=1):
        text = hit.text
        if len(text) > max_chars:
            text = text[:max_chars] + "..."
        previews.append({"id": index, "text": text, "score": hit.score})
    return previews
