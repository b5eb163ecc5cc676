"""Unit tests for the SQLite BLOB vector store."""

import pytest
import pytest_asyncio

from chatlab_rag.domain.entities import VectorRecord
from chatlab_rag.infrastructure.vector_store import (
    SQLiteVectorStore,
    blob_to_vector,
    vector_to_blob,
)


@pytest_asyncio.fixture
async def store(tmp_path):
    vector_store = await SQLiteVectorStore.open(tmp_path / "vectors" / "embeddings.db")
    yield vector_store
    await vector_store.close()


def test_blob_is_little_endian_float32():
    blob = vector_to_blob([1.0, -2.5])

    assert len(blob) == 8
    assert blob == b"\x00\x00\x80\x3f\x00\x00\x20\xc0"
    assert blob_to_vector(blob) == [1.0, -2.5]


@pytest.mark.asyncio
async def test_open_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "embeddings.db"
    vector_store = await SQLiteVectorStore.open(db_path)
    try:
        assert db_path.parent.is_dir()
    finally:
        await vector_store.close()


@pytest.mark.asyncio
async def test_round_trip_within_float32_precision(store):
    vector = [0.1, -0.2, 0.333333, 1e-4]
    await store.add("session_1", vector, {"session_id": 1, "participants": ["Alice"]})

    loaded = await store.get("session_1")

    assert loaded is not None
    assert len(loaded) == len(vector)
    for original, restored in zip(vector, loaded):
        assert restored == pytest.approx(original, rel=1e-6)


@pytest.mark.asyncio
async def test_add_replaces_existing_id(store):
    await store.add("a", [1.0, 0.0])
    await store.add("a", [0.0, 1.0])

    assert await store.get("a") == [0.0, 1.0]
    assert (await store.get_stats()).count == 1


@pytest.mark.asyncio
async def test_add_batch_counts_distinct_ids(store):
    await store.add_batch(
        [
            VectorRecord("a", [1.0, 0.0]),
            VectorRecord("b", [0.0, 1.0]),
            VectorRecord("a", [0.5, 0.5]),
        ]
    )

    stats = await store.get_stats()
    assert stats.count == 2
    assert stats.dimensions == 2
    assert stats.size_bytes is not None and stats.size_bytes > 0
    assert await store.get("a") == [0.5, 0.5]


@pytest.mark.asyncio
async def test_has_and_delete(store):
    await store.add("a", [1.0])

    assert await store.has("a") is True
    await store.delete("a")
    await store.delete("missing")
    assert await store.has("a") is False
    assert await store.get("a") is None


@pytest.mark.asyncio
async def test_search_returns_metadata_in_score_order(store):
    await store.add("x", [1.0, 0.0], {"session_id": 1})
    await store.add("y", [0.0, 1.0], {"session_id": 2})
    await store.add("z", [0.9, 0.1])

    results = await store.search([1.0, 0.0], top_k=2)

    assert [r.id for r in results] == ["x", "z"]
    assert results[0].metadata == {"session_id": 1}
    assert results[1].metadata is None
    assert results[0].score == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_search_empty_store(store):
    assert await store.search([1.0, 0.0], top_k=3) == []


@pytest.mark.asyncio
async def test_clear_removes_everything(store):
    await store.add("a", [1.0])
    await store.add("b", [2.0])

    await store.clear()

    stats = await store.get_stats()
    assert stats.count == 0
    assert stats.dimensions is None


@pytest.mark.asyncio
async def test_vectors_survive_reopen(tmp_path):
    db_path = tmp_path / "embeddings.db"
    first = await SQLiteVectorStore.open(db_path)
    await first.add("session_7", [0.25, 0.5])
    await first.close()
    await first.close()  # idempotent

    second = await SQLiteVectorStore.open(db_path)
    try:
        assert await second.get("session_7") == [0.25, 0.5]
    finally:
        await second.close()
