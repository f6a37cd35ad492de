"""
Abstract base interface for the database clients behind a memory store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional, Tuple

from ..entry import MemoryEntry


class MemoryDBClient(ABC):
    """
    Collection- and document-level operations against one concrete database.

    Embeddings cross this interface as JSON text (see
    ``data_formatter.serialize_embedding``). Missing collections and keys are
    never errors; backend faults propagate unchanged.
    """

    @abstractmethod
    async def create_collection(self, collection_name: str) -> None:
        """Create the collection unless it already exists."""

    @abstractmethod
    async def does_collection_exist(self, collection_name: str) -> bool:
        ...

    @abstractmethod
    def get_collections(self) -> AsyncIterator[str]:
        """Yield the name of every collection in the database."""

    @abstractmethod
    async def delete_collection(self, collection_name: str) -> None:
        """Drop the collection if it exists."""

    @abstractmethod
    async def read(
        self,
        collection_name: str,
        key: str,
        with_embeddings: bool = False,
    ) -> Optional[MemoryEntry]:
        ...

    @abstractmethod
    async def read_batch(
        self,
        collection_name: str,
        keys: Iterable[str],
        with_embeddings: bool = False,
    ) -> List[MemoryEntry]:
        """Return the entries found for ``keys``; unknown keys are skipped."""

    @abstractmethod
    async def delete(self, collection_name: str, key: str) -> None:
        ...

    @abstractmethod
    async def delete_batch(self, collection_name: str, keys: Iterable[str]) -> None:
        ...

    @abstractmethod
    async def upsert(
        self,
        collection_name: str,
        key: str,
        metadata: Optional[str],
        embedding: str,
        timestamp: Optional[datetime],
    ) -> None:
        """
        Replace metadata, embedding and timestamp of ``key``, creating the
        document when absent. A None timestamp is stored as the current time.
        """

    @abstractmethod
    def get_nearest_matches(
        self,
        collection_name: str,
        embedding: str,
        limit: int,
        min_relevance_score: float = 0.0,
        with_embeddings: bool = False,
    ) -> AsyncIterator[Tuple[MemoryEntry, float]]:
        """Yield ``(entry, score)`` pairs ordered by descending score."""

    async def close(self) -> None:
        """Release any connection held by the client."""
