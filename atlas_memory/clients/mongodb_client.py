"""
MongoDB Atlas client implementation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple

from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.server_api import ServerApi

from .base import MemoryDBClient
from ..constants import (
    BASE_PROJECTION_FIELDS,
    DEFAULT_INDEX_NAME,
    DEFAULT_NUM_CANDIDATES_MULTIPLIER,
    EMBEDDING_FIELD,
    KEY_FIELD,
    MAX_NUM_CANDIDATES,
    SCORE_FIELD,
)
from ..data_formatter import (
    deserialize_embedding,
    document_from_entry,
    entry_from_document,
    score_from_document,
)
from ..entry import MemoryEntry
from ..logging_utils import get_logger


logger = get_logger(__name__)


class MongoDBClient(MemoryDBClient):
    def __init__(
        self,
        connection_string: str,
        database_name: str,
        index_name: str = DEFAULT_INDEX_NAME,
        embedding_path: str = EMBEDDING_FIELD,
        num_candidates_multiplier: int = DEFAULT_NUM_CANDIDATES_MULTIPLIER,
        client: Optional[AsyncMongoClient] = None,
    ):
        """
        Initialize a client for one MongoDB Atlas database.

        Args:
            connection_string: MongoDB Atlas connection string
            database_name: Database holding the memory collections
            index_name: Atlas Vector Search index name
            embedding_path: Document field the vector index is built on
            num_candidates_multiplier: numCandidates sent to $vectorSearch is
                limit * this value, capped at MAX_NUM_CANDIDATES and never below limit
            client: Pre-built AsyncMongoClient (connection_string is then ignored)
        """
        self.database_name = database_name
        self.index_name = index_name
        self.embedding_path = embedding_path
        self.num_candidates_multiplier = num_candidates_multiplier

        # No I/O happens here; the driver connects lazily on first operation
        self.client = client or AsyncMongoClient(
            connection_string,
            server_api=ServerApi("1"),
            tz_aware=True,
        )
        self.db: AsyncDatabase = self.client[self.database_name]

        logger.info("MongoDB client ready for database '%s'", self.database_name)

    def _collection(self, collection_name: str) -> AsyncCollection:
        return self.db[collection_name]

    @staticmethod
    def _projection(with_embeddings: bool) -> Dict[str, Any]:
        projection: Dict[str, Any] = {"_id": 0}
        for field_name in BASE_PROJECTION_FIELDS:
            projection[field_name] = 1
        if with_embeddings:
            projection[EMBEDDING_FIELD] = 1
        return projection

    async def create_collection(self, collection_name: str) -> None:
        if await self.does_collection_exist(collection_name):
            return

        logger.info(
            "Creating collection '%s' in database '%s'",
            collection_name,
            self.database_name,
        )
        await self.db.create_collection(collection_name)

    async def does_collection_exist(self, collection_name: str) -> bool:
        names = await self.db.list_collection_names(filter={"name": collection_name})
        return len(names) > 0

    async def get_collections(self) -> AsyncIterator[str]:
        names = await self.db.list_collection_names()
        for name in names:
            yield name

    async def delete_collection(self, collection_name: str) -> None:
        if not await self.does_collection_exist(collection_name):
            return

        logger.info(
            "Dropping collection '%s' from database '%s'",
            collection_name,
            self.database_name,
        )
        await self.db.drop_collection(collection_name)

    async def read(
        self,
        collection_name: str,
        key: str,
        with_embeddings: bool = False,
    ) -> Optional[MemoryEntry]:
        document = await self._collection(collection_name).find_one(
            {KEY_FIELD: key},
            projection=self._projection(with_embeddings),
        )
        if document is None:
            return None
        return entry_from_document(document, collection_name)

    async def read_batch(
        self,
        collection_name: str,
        keys: Iterable[str],
        with_embeddings: bool = False,
    ) -> List[MemoryEntry]:
        cursor = self._collection(collection_name).find(
            {KEY_FIELD: {"$in": list(keys)}},
            projection=self._projection(with_embeddings),
        )
        return [entry_from_document(document, collection_name) async for document in cursor]

    async def delete(self, collection_name: str, key: str) -> None:
        await self._collection(collection_name).delete_one({KEY_FIELD: key})

    async def delete_batch(self, collection_name: str, keys: Iterable[str]) -> None:
        result = await self._collection(collection_name).delete_many(
            {KEY_FIELD: {"$in": list(keys)}}
        )
        logger.debug(
            "Deleted %d documents from collection '%s'",
            result.deleted_count,
            collection_name,
        )

    async def upsert(
        self,
        collection_name: str,
        key: str,
        metadata: Optional[str],
        embedding: str,
        timestamp: Optional[datetime],
    ) -> None:
        document = document_from_entry(
            MemoryEntry(
                key=key,
                metadata=metadata or "",
                embedding=deserialize_embedding(embedding),
                timestamp=timestamp,
                collection=collection_name,
            )
        )
        await self._collection(collection_name).update_one(
            {KEY_FIELD: key},
            {"$set": document},
            upsert=True,
        )
        logger.debug("Upserted key '%s' into collection '%s'", key, collection_name)

    def _num_candidates(self, limit: int) -> int:
        # Never fewer candidates than results, never more than Atlas accepts
        capped = min(limit * self.num_candidates_multiplier, MAX_NUM_CANDIDATES)
        return max(capped, limit)

    def _search_pipeline(
        self,
        query_vector: List[float],
        limit: int,
        min_relevance_score: float,
        with_embeddings: bool,
    ) -> List[Dict[str, Any]]:
        project = self._projection(with_embeddings)
        project[SCORE_FIELD] = {"$meta": "vectorSearchScore"}

        return [
            {
                "$vectorSearch": {
                    "index": self.index_name,
                    "path": self.embedding_path,
                    "queryVector": query_vector,
                    "numCandidates": self._num_candidates(limit),
                    "limit": limit,
                }
            },
            {"$project": project},
            {"$match": {SCORE_FIELD: {"$gte": min_relevance_score}}},
        ]

    async def get_nearest_matches(
        self,
        collection_name: str,
        embedding: str,
        limit: int,
        min_relevance_score: float = 0.0,
        with_embeddings: bool = False,
    ) -> AsyncIterator[Tuple[MemoryEntry, float]]:
        pipeline = self._search_pipeline(
            deserialize_embedding(embedding),
            limit,
            min_relevance_score,
            with_embeddings,
        )
        logger.debug(
            "Running vector search on '%s' (index=%s, limit=%d, min_score=%s)",
            collection_name,
            self.index_name,
            limit,
            min_relevance_score,
        )

        cursor = await self._collection(collection_name).aggregate(pipeline, allowDiskUse=True)
        async with cursor:
            async for document in cursor:
                yield entry_from_document(document, collection_name), score_from_document(document)

    async def close(self) -> None:
        await self.client.close()
