"""Collection storage and persistence backends."""

from .base import CollectionStatus, DocumentRecord, IndexBackend
from .duckdb import DuckDBIndexStore
from .json_store import JsonIndexSerializer, JsonIndexStore, write_atomic
from .locks import LockRegistry, ReadWriteLock
from .memory import CollectionStore

__all__ = [
    "CollectionStatus",
    "DocumentRecord",
    "IndexBackend",
    "DuckDBIndexStore",
    "JsonIndexSerializer",
    "JsonIndexStore",
    "LockRegistry",
    "ReadWriteLock",
    "CollectionStore",
    "write_atomic",
]
