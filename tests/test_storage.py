"""Tests for the collection store, locking and persistence backends."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import duckdb
import pytest

from retrieval_core.embeddings import embed
from retrieval_core.errors import (
    CollectionNotTrainedError,
    DimensionMismatchError,
    SerializationError,
)
from retrieval_core.storage import (
    CollectionStore,
    DocumentRecord,
    DuckDBIndexStore,
    JsonIndexSerializer,
    JsonIndexStore,
    LockRegistry,
    ReadWriteLock,
)

# Values whose shortest decimal repr differs from naive formatting.
_TRICKY_FLOATS = (0.1, 1 / 3, 2 / 3, 5e-324, 1.7976931348623157e308, 1e-300, 0.30000000000000004)


def _documents(dim: int = 8) -> list[DocumentRecord]:
    texts = ["Purchase price is forty five million.", "Risk summary for the quarter."]
    records = [
        DocumentRecord(sequence_id=i, text=text, embedding=tuple(embed(text, dim)))
        for i, text in enumerate(texts)
    ]
    records.append(
        DocumentRecord(
            sequence_id=2,
            text="Edge values",
            embedding=_TRICKY_FLOATS + (0.0,) * (dim - len(_TRICKY_FLOATS)),
        )
    )
    return records


def _reprs(documents: list[DocumentRecord]) -> list[list[str]]:
    return [[repr(value) for value in doc.embedding] for doc in documents]


# ---------------------------------------------------------------------------
# JsonIndexSerializer
# ---------------------------------------------------------------------------


def test_json_round_trip_is_bit_exact() -> None:
    serializer = JsonIndexSerializer()
    documents = _documents()

    data = serializer.dumps("c1", documents, dimensions=8)
    restored = serializer.loads(data, collection_id="c1", dimensions=8)

    assert restored == documents
    assert _reprs(restored) == _reprs(documents)


def test_json_envelope_shape() -> None:
    data = JsonIndexSerializer().dumps("c1", _documents(), dimensions=8)

    payload = json.loads(data)

    assert payload["formatVersion"] == 1
    assert payload["collectionId"] == "c1"
    assert payload["dimensions"] == 8
    assert [doc["sequenceId"] for doc in payload["documents"]] == [0, 1, 2]
    assert set(payload["documents"][0]) == {"sequenceId", "text", "embedding"}


def test_json_rejects_non_finite_values() -> None:
    documents = [DocumentRecord(sequence_id=0, text="bad", embedding=(float("nan"), 0.0))]

    with pytest.raises(SerializationError):
        JsonIndexSerializer().dumps("c1", documents, dimensions=2)


def test_json_loads_legacy_bare_array() -> None:
    legacy = json.dumps(
        [
            {"text": "first", "embedding": [1, 0, 0], "id": 0},
            {"text": "third", "embedding": [0, 0.5, 0.5], "id": 2},
        ]
    )

    documents = JsonIndexSerializer().loads(legacy, collection_id="old", dimensions=3)

    assert [doc.sequence_id for doc in documents] == [0, 2]
    assert documents[0].embedding == (1.0, 0.0, 0.0)
    assert all(isinstance(value, float) for value in documents[0].embedding)


def test_json_legacy_array_with_other_dimension() -> None:
    legacy = json.dumps([{"text": "first", "embedding": [1.0, 0.0], "id": 0}])

    with pytest.raises(DimensionMismatchError):
        JsonIndexSerializer().loads(legacy, collection_id="old", dimensions=3)


@pytest.mark.parametrize(
    "payload",
    [
        # sequence ids out of order
        {
            "formatVersion": 1,
            "collectionId": "c",
            "dimensions": 2,
            "documents": [
                {"sequenceId": 1, "text": "b", "embedding": [0.0, 1.0]},
                {"sequenceId": 0, "text": "a", "embedding": [1.0, 0.0]},
            ],
        },
        # embedding shorter than declared
        {
            "formatVersion": 1,
            "collectionId": "c",
            "dimensions": 2,
            "documents": [{"sequenceId": 0, "text": "a", "embedding": [1.0]}],
        },
        # future format version
        {"formatVersion": 99, "collectionId": "c", "dimensions": 2, "documents": []},
        # missing fields
        {"dimensions": 2, "documents": [{"text": "a"}]},
        # non-finite component
        {
            "formatVersion": 1,
            "collectionId": "c",
            "dimensions": 2,
            "documents": [{"sequenceId": 0, "text": "a", "embedding": [1.0, "NaN"]}],
        },
        # numeric strings are not coerced
        {
            "formatVersion": 1,
            "collectionId": "c",
            "dimensions": 2,
            "documents": [{"sequenceId": "0", "text": "a", "embedding": [1.0, 0.0]}],
        },
        {
            "formatVersion": 1,
            "collectionId": "c",
            "dimensions": 2,
            "documents": [{"sequenceId": 0, "text": "a", "embedding": ["0.5", "0.5"]}],
        },
        # booleans are not numbers
        {
            "formatVersion": 1,
            "collectionId": "c",
            "dimensions": 2,
            "documents": [{"sequenceId": 0, "text": "a", "embedding": [True, False]}],
        },
    ],
)
def test_json_rejects_invalid_payloads(payload: dict) -> None:
    with pytest.raises(SerializationError):
        JsonIndexSerializer().loads(json.dumps(payload), collection_id="c", dimensions=2)


def test_json_rejects_declared_dimension_mismatch() -> None:
    data = JsonIndexSerializer().dumps("c1", _documents(), dimensions=8)

    with pytest.raises(DimensionMismatchError) as excinfo:
        JsonIndexSerializer().loads(data, collection_id="c1", dimensions=768)
    assert excinfo.value.expected == 768
    assert excinfo.value.actual == 8


# ---------------------------------------------------------------------------
# JsonIndexStore
# ---------------------------------------------------------------------------


def test_json_store_save_load_list_delete(tmp_path: Path) -> None:
    store = JsonIndexStore(str(tmp_path / "indexes"))
    documents = _documents()

    store.save_collection("db/users", documents, dimensions=8)
    store.save_collection("doc1", documents[:1], dimensions=8)

    assert store.path_for("db/users").exists()
    assert store.path_for("db/users").parent == Path(store.index_dir)
    assert store.list_collections() == ["db/users", "doc1"]
    assert store.load_collection("db/users", dimensions=8) == documents
    assert store.delete_collection("doc1") is True
    assert store.delete_collection("doc1") is False
    assert store.list_collections() == ["db/users"]
    assert not list(Path(store.index_dir).glob("*.tmp"))


def test_json_store_missing_collection(tmp_path: Path) -> None:
    store = JsonIndexStore(str(tmp_path))

    with pytest.raises(SerializationError):
        store.load_collection("nope", dimensions=8)


def test_json_store_skips_unreadable_files(tmp_path: Path) -> None:
    store = JsonIndexStore(str(tmp_path))
    store.save_collection("good", _documents(), dimensions=8)
    (tmp_path / "broken.json").write_text("{not json")

    assert store.list_collections() == ["good"]


# ---------------------------------------------------------------------------
# DuckDBIndexStore
# ---------------------------------------------------------------------------


def test_duckdb_round_trip_is_bit_exact(tmp_path: Path) -> None:
    documents = _documents()

    with DuckDBIndexStore(str(tmp_path / "index.duckdb")) as store:
        store.save_collection("c1", documents, dimensions=8)
        restored = store.load_collection("c1", dimensions=8)

    assert restored == documents
    assert _reprs(restored) == _reprs(documents)


def test_duckdb_persists_across_connections(tmp_path: Path) -> None:
    db_path = str(tmp_path / "index.duckdb")
    with DuckDBIndexStore(db_path) as store:
        store.save_collection("c1", _documents(), dimensions=8)

    with DuckDBIndexStore(db_path) as reopened:
        assert reopened.list_collections() == ["c1"]
        assert len(reopened.load_collection("c1", dimensions=8)) == 3


def test_duckdb_save_replaces_collection(tmp_path: Path) -> None:
    documents = _documents()
    with DuckDBIndexStore(str(tmp_path / "index.duckdb")) as store:
        store.save_collection("c1", documents, dimensions=8)
        store.save_collection("c1", documents[:1], dimensions=8)

        assert store.load_collection("c1", dimensions=8) == documents[:1]


def test_duckdb_resave_updates_collection_header(tmp_path: Path) -> None:
    db_path = str(tmp_path / "index.duckdb")
    with DuckDBIndexStore(db_path) as store:
        store.save_collection("c1", _documents(), dimensions=8)
        store.save_collection("c1", _documents()[:2], dimensions=8)

    with duckdb.connect(db_path, read_only=True) as conn:
        row = conn.execute(
            "SELECT document_count, saved_at FROM collections WHERE id = ?", ["c1"]
        ).fetchone()
    assert row is not None
    assert row[0] == 2
    assert row[1] is not None


def test_duckdb_dimension_checks(tmp_path: Path) -> None:
    with DuckDBIndexStore(str(tmp_path / "index.duckdb")) as store:
        with pytest.raises(DimensionMismatchError):
            store.save_collection("c1", _documents(8), dimensions=16)

        store.save_collection("c1", _documents(8), dimensions=8)
        with pytest.raises(DimensionMismatchError):
            store.load_collection("c1", dimensions=768)


def test_duckdb_missing_and_delete(tmp_path: Path) -> None:
    with DuckDBIndexStore(str(tmp_path / "index.duckdb")) as store:
        with pytest.raises(SerializationError):
            store.load_collection("nope", dimensions=8)

        store.save_collection("c1", _documents(), dimensions=8)
        assert store.delete_collection("c1") is True
        assert store.delete_collection("c1") is False
        assert store.list_collections() == []


# ---------------------------------------------------------------------------
# CollectionStore
# ---------------------------------------------------------------------------


def test_collection_store_lifecycle() -> None:
    store = CollectionStore()
    documents = _documents()

    assert store.status("c1").exists is False
    with pytest.raises(CollectionNotTrainedError):
        store.snapshot("c1")

    assert store.replace("c1", documents) == 3
    status = store.status("c1")
    assert status.exists is True
    assert status.document_count == 3
    assert status.dimensions == 8
    assert store.snapshot("c1") == tuple(documents)
    assert store.list_collections() == ["c1"]

    assert store.drop("c1") is True
    assert store.status("c1").exists is False


def test_collection_store_rejects_mixed_dimensions() -> None:
    store = CollectionStore()
    mixed = [
        DocumentRecord(sequence_id=0, text="a", embedding=(1.0, 0.0)),
        DocumentRecord(sequence_id=1, text="b", embedding=(1.0, 0.0, 0.0)),
    ]

    with pytest.raises(DimensionMismatchError):
        store.replace("c1", mixed)
    assert store.status("c1").exists is False


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------


def test_writer_waits_for_reader() -> None:
    lock = ReadWriteLock()
    order: list[str] = []

    def writer() -> None:
        with lock.write():
            order.append("write")

    with lock.read():
        thread = threading.Thread(target=writer)
        thread.start()
        time.sleep(0.05)
        order.append("read-done")
    thread.join(timeout=2)

    assert order == ["read-done", "write"]


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader() -> None:
        with lock.read():
            entered.set()

    with lock.read():
        thread = threading.Thread(target=reader)
        thread.start()
        assert entered.wait(timeout=2)
    thread.join(timeout=2)


def test_lock_registry_reuses_locks() -> None:
    registry = LockRegistry()

    assert registry.get("a") is registry.get("a")
    assert registry.get("a") is not registry.get("b")


def test_lock_registry_peek_and_discard() -> None:
    registry = LockRegistry()

    assert registry.peek("a") is None
    assert len(registry) == 0

    lock = registry.get("a")
    registry.discard("a", ReadWriteLock())
    assert registry.peek("a") is lock

    registry.discard("a", lock)
    assert registry.peek("a") is None
    assert len(registry) == 0


def test_collection_store_lookups_do_not_allocate_locks() -> None:
    store = CollectionStore()

    for i in range(100):
        assert store.status(f"unknown-{i}").exists is False
        with pytest.raises(CollectionNotTrainedError):
            store.snapshot(f"unknown-{i}")
        assert store.drop(f"unknown-{i}") is False
    assert len(store._locks) == 0

    store.replace("c1", _documents())
    assert len(store._locks) == 1
    assert store.drop("c1") is True
    assert len(store._locks) == 0

    store.replace("c1", _documents())
    assert store.status("c1").document_count == 3
