"""
Abstract base interface for memory stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Iterable, Optional, Sequence, Tuple

from ..record import MemoryRecord


class MemoryStore(ABC):
    """
    Backend-agnostic store of vector records, grouped into named collections.

    Methods returning ``AsyncIterator`` are single-pass async generators.
    Reading or deleting something that does not exist is never an error.
    """

    @abstractmethod
    async def create_collection(self, collection_name: str) -> None:
        ...

    @abstractmethod
    async def does_collection_exist(self, collection_name: str) -> bool:
        ...

    @abstractmethod
    def get_collections(self) -> AsyncIterator[str]:
        ...

    @abstractmethod
    async def delete_collection(self, collection_name: str) -> None:
        ...

    @abstractmethod
    async def upsert(self, collection_name: str, record: MemoryRecord) -> str:
        """
        Insert or fully replace a record and return its key.
        """

    @abstractmethod
    def upsert_batch(
        self,
        collection_name: str,
        records: Iterable[MemoryRecord],
    ) -> AsyncIterator[str]:
        """
        Upsert each record in order, yielding keys as they are written.
        """

    @abstractmethod
    async def get(
        self,
        collection_name: str,
        key: str,
        with_embedding: bool = False,
    ) -> Optional[MemoryRecord]:
        ...

    @abstractmethod
    def get_batch(
        self,
        collection_name: str,
        keys: Iterable[str],
        with_embeddings: bool = False,
    ) -> AsyncIterator[MemoryRecord]:
        ...

    @abstractmethod
    async def remove(self, collection_name: str, key: str) -> None:
        ...

    @abstractmethod
    async def remove_batch(self, collection_name: str, keys: Iterable[str]) -> None:
        ...

    @abstractmethod
    async def get_nearest_match(
        self,
        collection_name: str,
        embedding: Sequence[float],
        min_relevance_score: float = 0.0,
        with_embedding: bool = False,
    ) -> Optional[Tuple[MemoryRecord, float]]:
        ...

    @abstractmethod
    def get_nearest_matches(
        self,
        collection_name: str,
        embedding: Sequence[float],
        limit: int,
        min_relevance_score: float = 0.0,
        with_embeddings: bool = False,
    ) -> AsyncIterator[Tuple[MemoryRecord, float]]:
        """
        Yield up to ``limit`` ``(record, score)`` pairs, best match first.
        """
