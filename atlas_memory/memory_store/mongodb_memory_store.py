"""
MongoDB Atlas memory store implementation.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Iterable, Optional, Sequence, Tuple

from .base import MemoryStore
from ..clients import MemoryDBClient, MongoDBClient, create_client
from ..config import Config
from ..data_formatter import record_from_entry, serialize_embedding
from ..logging_utils import get_logger
from ..record import MemoryRecord


logger = get_logger(__name__)


def _validate_collection_name(collection_name: str) -> None:
    if not collection_name or not collection_name.strip():
        raise ValueError("collection_name must be a non-empty string.")


class MongoDBMemoryStore(MemoryStore):
    """
    Memory store over a MemoryDBClient.

    The data is saved to the database reached by the client and persists
    between store instances.
    """

    def __init__(self, client: MemoryDBClient):
        self.client = client

    @classmethod
    def connect(
        cls,
        connection_string: str,
        database_name: str,
        **options: Any,
    ) -> "MongoDBMemoryStore":
        """
        Build a store backed by MongoDB Atlas.

        Extra keyword arguments are passed to MongoDBClient (index_name,
        embedding_path, num_candidates_multiplier).
        """
        return cls(MongoDBClient(connection_string, database_name, **options))

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "MongoDBMemoryStore":
        cfg = cfg or Config()
        return cls(create_client(cfg))

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "MongoDBMemoryStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def create_collection(self, collection_name: str) -> None:
        _validate_collection_name(collection_name)
        await self.client.create_collection(collection_name)

    async def does_collection_exist(self, collection_name: str) -> bool:
        _validate_collection_name(collection_name)
        return await self.client.does_collection_exist(collection_name)

    async def get_collections(self) -> AsyncIterator[str]:
        async for name in self.client.get_collections():
            yield name

    async def delete_collection(self, collection_name: str) -> None:
        _validate_collection_name(collection_name)
        await self.client.delete_collection(collection_name)

    async def _upsert(self, collection_name: str, record: MemoryRecord) -> str:
        record.key = record.metadata.id

        await self.client.upsert(
            collection_name,
            key=record.key,
            metadata=record.serialized_metadata(),
            embedding=serialize_embedding(record.embedding),
            timestamp=record.timestamp,
        )
        return record.key

    async def upsert(self, collection_name: str, record: MemoryRecord) -> str:
        _validate_collection_name(collection_name)
        return await self._upsert(collection_name, record)

    def upsert_batch(
        self,
        collection_name: str,
        records: Iterable[MemoryRecord],
    ) -> AsyncIterator[str]:
        _validate_collection_name(collection_name)
        return self._upsert_batch(collection_name, records)

    async def _upsert_batch(
        self,
        collection_name: str,
        records: Iterable[MemoryRecord],
    ) -> AsyncIterator[str]:
        # Each record is its own round trip; earlier writes stay if a later one fails
        count = 0
        for record in records:
            yield await self._upsert(collection_name, record)
            count += 1
        logger.info("Upserted %d records into collection '%s'", count, collection_name)

    async def get(
        self,
        collection_name: str,
        key: str,
        with_embedding: bool = False,
    ) -> Optional[MemoryRecord]:
        _validate_collection_name(collection_name)

        entry = await self.client.read(collection_name, key, with_embedding)
        if entry is None:
            return None
        return record_from_entry(entry)

    def get_batch(
        self,
        collection_name: str,
        keys: Iterable[str],
        with_embeddings: bool = False,
    ) -> AsyncIterator[MemoryRecord]:
        _validate_collection_name(collection_name)
        return self._get_batch(collection_name, keys, with_embeddings)

    async def _get_batch(
        self,
        collection_name: str,
        keys: Iterable[str],
        with_embeddings: bool,
    ) -> AsyncIterator[MemoryRecord]:
        entries = await self.client.read_batch(collection_name, keys, with_embeddings)
        for entry in entries:
            yield record_from_entry(entry)

    async def remove(self, collection_name: str, key: str) -> None:
        _validate_collection_name(collection_name)
        await self.client.delete(collection_name, key)

    async def remove_batch(self, collection_name: str, keys: Iterable[str]) -> None:
        _validate_collection_name(collection_name)
        await self.client.delete_batch(collection_name, keys)

    async def get_nearest_match(
        self,
        collection_name: str,
        embedding: Sequence[float],
        min_relevance_score: float = 0.0,
        with_embedding: bool = False,
    ) -> Optional[Tuple[MemoryRecord, float]]:
        matches = self.get_nearest_matches(
            collection_name,
            embedding,
            limit=1,
            min_relevance_score=min_relevance_score,
            with_embeddings=with_embedding,
        )
        try:
            async for match in matches:
                return match
        finally:
            await matches.aclose()
        return None

    def get_nearest_matches(
        self,
        collection_name: str,
        embedding: Sequence[float],
        limit: int,
        min_relevance_score: float = 0.0,
        with_embeddings: bool = False,
    ) -> AsyncIterator[Tuple[MemoryRecord, float]]:
        _validate_collection_name(collection_name)
        return self._get_nearest_matches(
            collection_name,
            embedding,
            limit,
            min_relevance_score,
            with_embeddings,
        )

    async def _get_nearest_matches(
        self,
        collection_name: str,
        embedding: Sequence[float],
        limit: int,
        min_relevance_score: float,
        with_embeddings: bool,
    ) -> AsyncIterator[Tuple[MemoryRecord, float]]:
        if limit <= 0:
            return

        results = self.client.get_nearest_matches(
            collection_name,
            serialize_embedding(embedding),
            limit,
            min_relevance_score=min_relevance_score,
            with_embeddings=with_embeddings,
        )
        async for entry, score in results:
            yield record_from_entry(entry), score
