"""
DuckDB storage backend for collection persistence.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import duckdb

from .base import DocumentRecord
from ..errors import DimensionMismatchError, SerializationError
from ..models import FORMAT_VERSION

logger = logging.getLogger(__name__)


class DuckDBIndexStore:
    """DuckDB-backed persistence for many collections in one database file."""

    def __init__(
        self,
        db_path: str,
        *,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        self.read_only = read_only
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(self.db_path, read_only=read_only)
        # A DuckDB connection is not safe for concurrent use from several threads.
        self._conn_lock = threading.Lock()
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        with self._conn_lock:
            self._conn.close()

    def __enter__(self) -> "DuckDBIndexStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def initialize(self) -> None:
        with self._conn_lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    id VARCHAR PRIMARY KEY,
                    format_version INTEGER NOT NULL,
                    dimensions INTEGER NOT NULL,
                    document_count INTEGER NOT NULL,
                    saved_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection_id VARCHAR NOT NULL,
                    sequence_id INTEGER NOT NULL,
                    text VARCHAR NOT NULL,
                    embedding DOUBLE[] NOT NULL
                );
                """
            )

    def save_collection(
        self,
        collection_id: str,
        documents: list[DocumentRecord],
        *,
        dimensions: int,
    ) -> None:
        for document in documents:
            if document.dimensions != dimensions:
                raise DimensionMismatchError(
                    dimensions,
                    document.dimensions,
                    context=f"document {document.sequence_id}",
                )
        rows = [
            [collection_id, doc.sequence_id, doc.text, list(doc.embedding)]
            for doc in documents
        ]
        with self._conn_lock:
            try:
                self._conn.execute("BEGIN TRANSACTION")
                self._conn.execute(
                    "DELETE FROM documents WHERE collection_id = ?", [collection_id]
                )
                self._conn.execute(
                    """
                    INSERT INTO collections (id, format_version, dimensions, document_count)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        format_version = excluded.format_version,
                        dimensions = excluded.dimensions,
                        document_count = excluded.document_count,
                        saved_at = now()
                    """,
                    [collection_id, FORMAT_VERSION, dimensions, len(documents)],
                )
                if rows:
                    self._conn.executemany(
                        """
                        INSERT INTO documents (collection_id, sequence_id, text, embedding)
                        VALUES (?, ?, ?, ?)
                        """,
                        rows,
                    )
                self._conn.execute("COMMIT")
            except duckdb.Error as exc:
                self._conn.execute("ROLLBACK")
                raise SerializationError(
                    f"Failed to save collection {collection_id!r}: {exc}"
                ) from exc
        logger.info(
            "Index saved: %s#%s (%d docs)", self.db_path, collection_id, len(documents)
        )

    def load_collection(
        self,
        collection_id: str,
        *,
        dimensions: int,
    ) -> list[DocumentRecord]:
        with self._conn_lock:
            try:
                header = self._conn.execute(
                    """
                    SELECT format_version, dimensions, document_count
                    FROM collections
                    WHERE id = ?
                    """,
                    [collection_id],
                ).fetchone()
                rows = self._conn.execute(
                    """
                    SELECT sequence_id, text, embedding
                    FROM documents
                    WHERE collection_id = ?
                    ORDER BY sequence_id ASC
                    """,
                    [collection_id],
                ).fetchall()
            except duckdb.Error as exc:
                raise SerializationError(
                    f"Failed to load collection {collection_id!r}: {exc}"
                ) from exc

        if header is None:
            raise SerializationError(
                f"No persisted index for collection {collection_id!r} in {self.db_path}"
            )
        format_version, stored_dimensions, document_count = (
            int(header[0]),
            int(header[1]),
            int(header[2]),
        )
        if format_version > FORMAT_VERSION:
            raise SerializationError(
                f"Unsupported format version {format_version} for {collection_id!r}"
            )
        if stored_dimensions != dimensions:
            raise DimensionMismatchError(
                dimensions, stored_dimensions, context="persisted index"
            )
        if len(rows) != document_count:
            raise SerializationError(
                f"Collection {collection_id!r} declares {document_count} documents, "
                f"found {len(rows)}"
            )

        documents: list[DocumentRecord] = []
        for row in rows:
            embedding = tuple(float(value) for value in row[2])
            if len(embedding) != stored_dimensions:
                raise SerializationError(
                    f"Document {row[0]} of {collection_id!r} has {len(embedding)} "
                    f"components, expected {stored_dimensions}"
                )
            documents.append(
                DocumentRecord(sequence_id=int(row[0]), text=str(row[1]), embedding=embedding)
            )
        logger.info(
            "Index loaded: %s#%s (%d docs)", self.db_path, collection_id, len(documents)
        )
        return documents

    def list_collections(self) -> list[str]:
        with self._conn_lock:
            rows = self._conn.execute(
                "SELECT id FROM collections ORDER BY id ASC"
            ).fetchall()
        return [str(row[0]) for row in rows]

    def delete_collection(self, collection_id: str) -> bool:
        with self._conn_lock:
            existed = self._conn.execute(
                "SELECT COUNT(*) FROM collections WHERE id = ?", [collection_id]
            ).fetchone()
            self._conn.execute(
                "DELETE FROM documents WHERE collection_id = ?", [collection_id]
            )
            self._conn.execute("DELETE FROM collections WHERE id = ?", [collection_id])
        return bool(existed and existed[0])
