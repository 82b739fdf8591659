"""
Configuration helpers for embedding, chunking and index storage.
"""

from __future__ import annotations

import hashlib
import os
import re
from pathlib import Path
from typing import Literal


DEFAULT_INDEX_DIR = "~/.retrieval_core/indexes"
ENV_INDEX_DIR = "RETRIEVAL_INDEX_DIR"
ENV_EMBEDDING_DIM = "RETRIEVAL_EMBEDDING_DIM"
ENV_CHUNK_WORDS = "RETRIEVAL_CHUNK_WORDS"
ENV_CHUNK_OVERLAP = "RETRIEVAL_CHUNK_OVERLAP"
ENV_MAX_WORKERS = "RETRIEVAL_MAX_WORKERS"

DEFAULT_DIM = 768
DEFAULT_CHUNK_WORDS = 300
DEFAULT_CHUNK_OVERLAP = 50
DEFAULT_MAX_WORKERS = 4
DUCKDB_FILENAME = "index.duckdb"

Backend = Literal["json", "duckdb"]

_SLUG_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def env_int(name: str, default: int) -> int:
    """Read an integer from the environment, falling back to *default*."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def resolve_index_dir(override_path: str | None = None) -> str:
    """
    Resolve the index directory from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) RETRIEVAL_INDEX_DIR
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_INDEX_DIR) or DEFAULT_INDEX_DIR
    resolved = Path(raw_path).expanduser().resolve()
    resolved.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def collection_path(index_dir: str, collection_id: str) -> Path:
    """Map a collection id to the JSON file holding its persisted index."""
    slug = _SLUG_RE.sub("_", collection_id).strip("._") or "collection"
    digest = hashlib.sha1(collection_id.encode("utf-8")).hexdigest()[:10]
    return Path(index_dir) / f"{slug[:64]}-{digest}.json"


def duckdb_path(index_dir: str) -> Path:
    """Return the DuckDB database shared by all collections in *index_dir*."""
    return Path(index_dir) / DUCKDB_FILENAME
