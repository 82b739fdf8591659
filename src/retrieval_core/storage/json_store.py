"""
JSON persistence for collections.

One file (or byte stream) per collection. Floats are written with Python's
shortest round-trip repr, so embeddings read back bit-for-bit.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError

from .base import DocumentRecord
from ..config import collection_path
from ..errors import DimensionMismatchError, SerializationError
from ..models import FORMAT_VERSION, PersistedCollection, PersistedDocument

logger = logging.getLogger(__name__)


def write_atomic(target: str | os.PathLike, data: bytes) -> None:
    """Write *data* to *target* through a sibling temp file and a rename."""
    target = Path(target)
    try:
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
    except OSError as exc:
        raise SerializationError(f"Failed to write {target}: {exc}") from exc
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, target)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise SerializationError(f"Failed to write {target}: {exc}") from exc


class JsonIndexSerializer:
    """Convert a collection to and from versioned JSON bytes."""

    def dumps(
        self,
        collection_id: str,
        documents: list[DocumentRecord],
        *,
        dimensions: int,
    ) -> bytes:
        try:
            payload = PersistedCollection(
                format_version=FORMAT_VERSION,
                collection_id=collection_id,
                dimensions=dimensions,
                documents=[
                    PersistedDocument(
                        sequence_id=doc.sequence_id,
                        text=doc.text,
                        embedding=list(doc.embedding),
                    )
                    for doc in documents
                ],
            )
            raw = json.dumps(
                payload.model_dump(by_alias=True),
                ensure_ascii=False,
                allow_nan=False,
            )
        except (ValidationError, ValueError) as exc:
            raise SerializationError(
                f"Cannot serialize collection {collection_id!r}: {exc}"
            ) from exc
        return raw.encode("utf-8")

    def loads(
        self,
        data: bytes | str,
        *,
        collection_id: str,
        dimensions: int,
    ) -> list[DocumentRecord]:
        """Parse persisted bytes, checking them against the active dimension."""
        try:
            parsed: Any = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SerializationError(f"Corrupt or truncated index data: {exc}") from exc

        if isinstance(parsed, list):
            parsed = self._wrap_bare_records(parsed, collection_id, dimensions)
        if not isinstance(parsed, dict):
            raise SerializationError(
                f"Index data must be a JSON object or array, got {type(parsed).__name__}"
            )

        # Dimension mismatch is reported ahead of schema validation.
        declared = parsed.get("dimensions")
        if isinstance(declared, int) and not isinstance(declared, bool):
            if declared != dimensions:
                raise DimensionMismatchError(
                    dimensions, declared, context="persisted index"
                )

        try:
            payload = PersistedCollection.model_validate(parsed)
        except ValidationError as exc:
            raise SerializationError(f"Invalid index data: {exc}") from exc

        return [
            DocumentRecord(
                sequence_id=doc.sequence_id,
                text=doc.text,
                embedding=tuple(doc.embedding),
            )
            for doc in payload.documents
        ]

    def dump(
        self,
        collection_id: str,
        documents: list[DocumentRecord],
        sink: IO[bytes],
        *,
        dimensions: int,
    ) -> None:
        data = self.dumps(collection_id, documents, dimensions=dimensions)
        try:
            sink.write(data)
        except OSError as exc:
            raise SerializationError(f"Failed to write index: {exc}") from exc

    def load(
        self,
        source: IO[bytes],
        *,
        collection_id: str,
        dimensions: int,
    ) -> list[DocumentRecord]:
        try:
            data = source.read()
        except OSError as exc:
            raise SerializationError(f"Failed to read index: {exc}") from exc
        return self.loads(data, collection_id=collection_id, dimensions=dimensions)

    @staticmethod
    def _wrap_bare_records(
        records: list[Any],
        collection_id: str,
        dimensions: int,
    ) -> dict[str, Any]:
        inferred = dimensions
        if records and isinstance(records[0], dict):
            embedding = records[0].get("embedding")
            if isinstance(embedding, list):
                inferred = len(embedding)
        return {
            "formatVersion": FORMAT_VERSION,
            "collectionId": collection_id,
            "dimensions": inferred,
            "documents": records,
        }


class JsonIndexStore:
    """Store each collection as a JSON file inside an index directory."""

    def __init__(
        self,
        index_dir: str,
        *,
        serializer: JsonIndexSerializer | None = None,
    ) -> None:
        self.index_dir = str(Path(index_dir).expanduser().resolve())
        Path(self.index_dir).mkdir(parents=True, exist_ok=True)
        self.serializer = serializer or JsonIndexSerializer()

    def path_for(self, collection_id: str) -> Path:
        return collection_path(self.index_dir, collection_id)

    def save_collection(
        self,
        collection_id: str,
        documents: list[DocumentRecord],
        *,
        dimensions: int,
    ) -> None:
        data = self.serializer.dumps(collection_id, documents, dimensions=dimensions)
        target = self.path_for(collection_id)
        write_atomic(target, data)
        logger.info("Index saved: %s (%d docs)", target, len(documents))

    def load_collection(
        self,
        collection_id: str,
        *,
        dimensions: int,
    ) -> list[DocumentRecord]:
        target = self.path_for(collection_id)
        try:
            data = target.read_bytes()
        except FileNotFoundError as exc:
            raise SerializationError(
                f"No persisted index for collection {collection_id!r} at {target}"
            ) from exc
        except OSError as exc:
            raise SerializationError(f"Failed to read {target}: {exc}") from exc
        documents = self.serializer.loads(
            data, collection_id=collection_id, dimensions=dimensions
        )
        logger.info("Index loaded: %s (%d docs)", target, len(documents))
        return documents

    def list_collections(self) -> list[str]:
        collection_ids: list[str] = []
        for path in sorted(Path(self.index_dir).glob("*.json")):
            try:
                with path.open("rb") as handle:
                    head = json.load(handle)
            except (OSError, json.JSONDecodeError, UnicodeDecodeError):
                logger.warning("Skipping unreadable index file %s", path)
                continue
            if isinstance(head, dict) and isinstance(head.get("collectionId"), str):
                collection_ids.append(head["collectionId"])
        return sorted(collection_ids)

    def delete_collection(self, collection_id: str) -> bool:
        target = self.path_for(collection_id)
        if not target.exists():
            return False
        target.unlink()
        return True
