"""Tests for MongoDBMemoryStore over the in-memory client."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from atlas_memory import InMemoryClient, MemoryDBClient, MemoryRecord, MongoDBMemoryStore


async def _collect(iterator):
    return [item async for item in iterator]


class TestCollections:
    """Collection lifecycle."""

    @pytest.mark.asyncio
    async def test_create_exists_delete(self, store, collection):
        assert await store.does_collection_exist(collection) is False

        await store.create_collection(collection)
        assert await store.does_collection_exist(collection) is True

        await store.delete_collection(collection)
        assert await store.does_collection_exist(collection) is False

    @pytest.mark.asyncio
    async def test_create_twice_is_noop(self, store, collection):
        await store.create_collection(collection)
        await store.create_collection(collection)

        assert await _collect(store.get_collections()) == [collection]

    @pytest.mark.asyncio
    async def test_delete_missing_collection_is_noop(self, store):
        await store.delete_collection("never_created")

        assert await store.does_collection_exist("never_created") is False

    @pytest.mark.asyncio
    async def test_get_collections(self, store):
        await store.create_collection("a")
        await store.create_collection("b")

        assert sorted(await _collect(store.get_collections())) == ["a", "b"]


class TestUpsertAndGet:
    """Record writes and reads."""

    @pytest.mark.asyncio
    async def test_upsert_returns_metadata_id_as_key(self, store, collection, make_record):
        record = make_record(id="doc-1")
        await store.create_collection(collection)

        key = await store.upsert(collection, record)

        assert key == "doc-1"
        assert record.key == "doc-1"

    @pytest.mark.asyncio
    async def test_get_without_embedding_returns_empty_vector(
        self, store, collection, make_record
    ):
        await store.create_collection(collection)
        key = await store.upsert(collection, make_record(embedding=[1.0, 2.0, 3.0]))

        actual = await store.get(collection, key)

        assert actual is not None
        assert actual.embedding.size == 0
        assert actual.embedding.dtype == np.float32

    @pytest.mark.asyncio
    async def test_get_with_embedding_round_trips_vector(self, store, collection, make_record):
        await store.create_collection(collection)
        key = await store.upsert(collection, make_record(embedding=[1.0, 2.0, 3.0]))

        actual = await store.get(collection, key, with_embedding=True)

        assert actual is not None
        np.testing.assert_array_equal(actual.embedding, np.array([1.0, 2.0, 3.0], dtype=np.float32))

    @pytest.mark.asyncio
    async def test_metadata_round_trip(self, store, collection):
        record = MemoryRecord.reference_record(
            external_id="https://example.com/doc",
            source_name="example",
            description="an external page",
            embedding=[0.5, 0.5],
            additional_metadata="{\"lang\": \"en\"}",
        )
        await store.create_collection(collection)
        key = await store.upsert(collection, record)

        actual = await store.get(collection, key)

        assert actual.metadata == record.metadata
        assert actual.metadata.is_reference is True
        assert actual.metadata.external_source_name == "example"

    @pytest.mark.asyncio
    async def test_missing_timestamp_is_assigned(self, store, collection, make_record):
        await store.create_collection(collection)
        before = datetime.now(UTC).replace(microsecond=0)
        key = await store.upsert(collection, make_record(timestamp=None))

        actual = await store.get(collection, key)

        assert actual.timestamp is not None
        assert actual.timestamp >= before

    @pytest.mark.asyncio
    async def test_given_timestamp_is_kept(self, store, collection, make_record):
        stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        await store.create_collection(collection)
        key = await store.upsert(collection, make_record(timestamp=stamp))

        actual = await store.get(collection, key)

        assert actual.timestamp == stamp

    @pytest.mark.asyncio
    async def test_naive_timestamp_is_read_back_as_utc(self, store, collection, make_record):
        await store.create_collection(collection)
        key = await store.upsert(collection, make_record(timestamp=datetime(2024, 1, 2, 3, 4, 5, 678901)))

        actual = await store.get(collection, key)

        assert actual.timestamp == datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=UTC)
        assert actual.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_second_upsert_replaces_first(self, store, collection, make_record):
        first = make_record(
            id="same",
            text="first",
            description="first description",
            embedding=[1.0, 1.0, 1.0],
            timestamp=datetime(2023, 1, 1, tzinfo=UTC),
        )
        second = make_record(
            id="same",
            text="second",
            description="second description",
            embedding=[9.0, 8.0, 7.0],
            timestamp=datetime(2024, 6, 1, tzinfo=UTC),
        )
        await store.create_collection(collection)

        await store.upsert(collection, first)
        await store.upsert(collection, second)
        actual = await store.get(collection, "same", with_embedding=True)

        assert actual.metadata.text == "second"
        assert actual.metadata.description == "second description"
        np.testing.assert_array_equal(actual.embedding, second.embedding)
        assert actual.timestamp == datetime(2024, 6, 1, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self, store, collection):
        await store.create_collection(collection)

        assert await store.get(collection, "nope") is None

    @pytest.mark.asyncio
    async def test_upsert_batch_preserves_order(self, store, collection, make_record):
        records = [make_record(id=f"id-{i}") for i in range(3)]
        await store.create_collection(collection)

        keys = await _collect(store.upsert_batch(collection, records))

        assert keys == ["id-0", "id-1", "id-2"]

    @pytest.mark.asyncio
    async def test_upsert_batch_keeps_earlier_writes_on_failure(self, collection, make_record):
        client = InMemoryClient()
        real_upsert = client.upsert
        calls = 0

        async def flaky_upsert(*args, **kwargs):
            nonlocal calls
            calls += 1
            if calls == 2:
                raise RuntimeError("connection reset")
            await real_upsert(*args, **kwargs)

        client.upsert = flaky_upsert
        store = MongoDBMemoryStore(client)
        records = [make_record(id=f"id-{i}") for i in range(3)]

        keys = []
        with pytest.raises(RuntimeError, match="connection reset"):
            async for key in store.upsert_batch(collection, records):
                keys.append(key)

        assert keys == ["id-0"]
        assert await store.get(collection, "id-0") is not None
        assert await store.get(collection, "id-1") is None

    @pytest.mark.asyncio
    async def test_get_batch_skips_missing_keys(self, store, collection, make_record):
        await store.create_collection(collection)
        await _collect(store.upsert_batch(collection, [make_record(id="a"), make_record(id="b")]))

        records = await _collect(store.get_batch(collection, ["a", "missing", "b", "gone"]))

        assert len(records) == 2
        assert {r.key for r in records} == {"a", "b"}
        assert all(r.embedding.size == 0 for r in records)

    @pytest.mark.asyncio
    async def test_get_batch_with_embeddings(self, store, collection, make_record):
        await store.create_collection(collection)
        await store.upsert(collection, make_record(id="a", embedding=[0.1, 0.2]))

        records = await _collect(store.get_batch(collection, ["a"], with_embeddings=True))

        np.testing.assert_allclose(records[0].embedding, [0.1, 0.2], rtol=1e-6)


class TestRemove:
    """Record deletion."""

    @pytest.mark.asyncio
    async def test_remove(self, store, collection, make_record):
        await store.create_collection(collection)
        key = await store.upsert(collection, make_record())

        await store.remove(collection, key)

        assert await store.get(collection, key) is None

    @pytest.mark.asyncio
    async def test_remove_missing_key_is_noop(self, store, collection):
        await store.create_collection(collection)

        await store.remove(collection, "does-not-exist")

        assert await store.get(collection, "does-not-exist") is None

    @pytest.mark.asyncio
    async def test_remove_batch(self, store, collection, make_record):
        await store.create_collection(collection)
        await _collect(
            store.upsert_batch(collection, [make_record(id=k) for k in ("a", "b", "c")])
        )

        await store.remove_batch(collection, ["a", "c", "missing"])

        remaining = await _collect(store.get_batch(collection, ["a", "b", "c"]))
        assert [r.key for r in remaining] == ["b"]


class TestNearestMatches:
    """Vector search through the store."""

    async def _populate(self, store, collection, make_record):
        vectors = {
            "exact": [1.0, 0.0, 0.0],
            "close": [0.9, 0.1, 0.0],
            "diagonal": [0.5, 0.5, 0.0],
            "orthogonal": [0.0, 1.0, 0.0],
            "opposite": [-1.0, 0.0, 0.0],
        }
        await store.create_collection(collection)
        for key, vec in vectors.items():
            await store.upsert(collection, make_record(id=key, embedding=vec))
        return store

    @pytest.mark.asyncio
    async def test_limit_and_descending_order(self, store, collection, make_record):
        await self._populate(store, collection, make_record)

        matches = await _collect(
            store.get_nearest_matches(collection, [1.0, 0.0, 0.0], limit=4, min_relevance_score=0)
        )

        assert len(matches) == 4
        scores = [score for _, score in matches]
        assert all(scores[i] >= scores[i + 1] for i in range(len(scores) - 1))
        assert matches[0][0].key == "exact"
        assert "opposite" not in [record.key for record, _ in matches]

    @pytest.mark.asyncio
    async def test_min_relevance_score_filters(self, store, collection, make_record):
        await self._populate(store, collection, make_record)

        matches = await _collect(
            store.get_nearest_matches(collection, [1.0, 0.0, 0.0], limit=10, min_relevance_score=0.8)
        )

        assert [record.key for record, _ in matches] == ["exact", "close", "diagonal"]
        assert all(score >= 0.8 for _, score in matches)

    @pytest.mark.asyncio
    async def test_scores_use_zero_to_one_scale(self, store, collection, make_record):
        await self._populate(store, collection, make_record)

        matches = await _collect(store.get_nearest_matches(collection, [1.0, 0.0, 0.0], limit=10))

        scores = {record.key: score for record, score in matches}
        assert scores["exact"] == pytest.approx(1.0)
        assert scores["orthogonal"] == pytest.approx(0.5)
        assert scores["opposite"] == pytest.approx(0.0)
        assert all(0.0 <= score <= 1.0 for score in scores.values())

    @pytest.mark.asyncio
    async def test_embeddings_only_when_requested(self, store, collection, make_record):
        await self._populate(store, collection, make_record)

        without = await _collect(store.get_nearest_matches(collection, [1.0, 0.0, 0.0], limit=2))
        with_vec = await _collect(
            store.get_nearest_matches(collection, [1.0, 0.0, 0.0], limit=2, with_embeddings=True)
        )

        assert all(record.embedding.size == 0 for record, _ in without)
        assert all(record.embedding.size == 3 for record, _ in with_vec)

    @pytest.mark.asyncio
    async def test_zero_limit_returns_nothing_without_backend_call(self, collection):
        client = MagicMock(spec=MemoryDBClient)
        store = MongoDBMemoryStore(client)

        matches = await _collect(store.get_nearest_matches(collection, [1.0, 2.0], limit=0))

        assert matches == []
        client.get_nearest_matches.assert_not_called()

    @pytest.mark.asyncio
    async def test_negative_limit_returns_nothing(self, store, collection, make_record):
        await self._populate(store, collection, make_record)

        assert await _collect(store.get_nearest_matches(collection, [1.0, 0.0, 0.0], limit=-3)) == []

    @pytest.mark.asyncio
    async def test_get_nearest_match(self, store, collection, make_record):
        await self._populate(store, collection, make_record)

        match = await store.get_nearest_match(collection, [0.0, 1.0, 0.0], with_embedding=True)

        assert match is not None
        record, score = match
        assert record.key == "orthogonal"
        assert score == pytest.approx(1.0)
        np.testing.assert_array_equal(record.embedding, [0.0, 1.0, 0.0])

    @pytest.mark.asyncio
    async def test_get_nearest_match_empty_collection(self, store, collection):
        await store.create_collection(collection)

        assert await store.get_nearest_match(collection, [1.0, 0.0]) is None


class TestCollectionNameValidation:
    """Empty collection names fail before the client is touched."""

    @pytest.fixture
    def client(self):
        return MagicMock(spec=MemoryDBClient)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   "])
    async def test_coroutines_reject_blank_name(self, client, make_record, name):
        store = MongoDBMemoryStore(client)

        with pytest.raises(ValueError):
            await store.create_collection(name)
        with pytest.raises(ValueError):
            await store.does_collection_exist(name)
        with pytest.raises(ValueError):
            await store.delete_collection(name)
        with pytest.raises(ValueError):
            await store.upsert(name, make_record())
        with pytest.raises(ValueError):
            await store.get(name, "key")
        with pytest.raises(ValueError):
            await store.remove(name, "key")
        with pytest.raises(ValueError):
            await store.remove_batch(name, ["key"])
        with pytest.raises(ValueError):
            await store.get_nearest_match(name, [1.0])

        assert client.method_calls == []

    @pytest.mark.parametrize("name", ["", "   "])
    def test_sequences_reject_blank_name_at_call_time(self, client, make_record, name):
        store = MongoDBMemoryStore(client)

        with pytest.raises(ValueError):
            store.upsert_batch(name, [make_record()])
        with pytest.raises(ValueError):
            store.get_batch(name, ["key"])
        with pytest.raises(ValueError):
            store.get_nearest_matches(name, [1.0], limit=3)

        assert client.method_calls == []


class TestErrorsAndLifecycle:
    """Backend faults, cancellation and closing."""

    @pytest.mark.asyncio
    async def test_backend_errors_propagate_unchanged(self, collection):
        client = MagicMock(spec=MemoryDBClient)
        error = ConnectionError("server selection timeout")
        client.read = AsyncMock(side_effect=error)
        store = MongoDBMemoryStore(client)

        with pytest.raises(ConnectionError) as exc_info:
            await store.get(collection, "key")

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, collection):
        started = asyncio.Event()

        async def slow_read(*args, **kwargs):
            started.set()
            await asyncio.sleep(60)

        client = MagicMock(spec=MemoryDBClient)
        client.read = slow_read
        store = MongoDBMemoryStore(client)

        task = asyncio.create_task(store.get(collection, "key"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_client(self):
        client = MagicMock(spec=MemoryDBClient)
        client.close = AsyncMock()

        async with MongoDBMemoryStore(client) as store:
            assert store.client is client

        client.close.assert_awaited_once()
