"""
Process-local client used for tests and local development.
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime
from typing import AsyncIterator, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .base import MemoryDBClient
from ..data_formatter import deserialize_embedding, normalize_timestamp
from ..entry import MemoryEntry
from ..logging_utils import get_logger


logger = get_logger(__name__)


def _relevance_score(query: np.ndarray, candidate: np.ndarray) -> Optional[float]:
    """
    Cosine similarity rescaled to [0, 1] the way Atlas reports
    vectorSearchScore for a cosine index: (1 + cos) / 2.

    Returns None for vectors of another dimension, which an Atlas index
    never returns.
    """
    if query.shape != candidate.shape:
        return None
    denom = float(np.linalg.norm(query) * np.linalg.norm(candidate))
    cosine = 0.0 if denom == 0.0 else float(np.dot(query, candidate) / denom)
    return (1.0 + cosine) / 2.0


class InMemoryClient(MemoryDBClient):
    """
    Keeps every collection in a dict and ranks with cosine similarity,
    reported on the same [0, 1] scale as Atlas vectorSearchScore.

    Mirrors the MongoDB client's contract, including stored timestamps
    defaulting to the current UTC time and reads without embeddings.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, MemoryEntry]] = {}

    async def create_collection(self, collection_name: str) -> None:
        if collection_name in self._collections:
            return
        logger.info("Creating in-memory collection '%s'", collection_name)
        self._collections[collection_name] = {}

    async def does_collection_exist(self, collection_name: str) -> bool:
        return collection_name in self._collections

    async def get_collections(self) -> AsyncIterator[str]:
        for name in list(self._collections):
            yield name

    async def delete_collection(self, collection_name: str) -> None:
        if self._collections.pop(collection_name, None) is not None:
            logger.info("Dropped in-memory collection '%s'", collection_name)

    def _copy(self, entry: MemoryEntry, with_embeddings: bool) -> MemoryEntry:
        copied = deepcopy(entry)
        if not with_embeddings:
            copied.embedding = None
        return copied

    async def read(
        self,
        collection_name: str,
        key: str,
        with_embeddings: bool = False,
    ) -> Optional[MemoryEntry]:
        entry = self._collections.get(collection_name, {}).get(key)
        if entry is None:
            return None
        return self._copy(entry, with_embeddings)

    async def read_batch(
        self,
        collection_name: str,
        keys: Iterable[str],
        with_embeddings: bool = False,
    ) -> List[MemoryEntry]:
        entries = self._collections.get(collection_name, {})
        return [self._copy(entries[key], with_embeddings) for key in keys if key in entries]

    async def delete(self, collection_name: str, key: str) -> None:
        self._collections.get(collection_name, {}).pop(key, None)

    async def delete_batch(self, collection_name: str, keys: Iterable[str]) -> None:
        entries = self._collections.get(collection_name, {})
        for key in keys:
            entries.pop(key, None)

    async def upsert(
        self,
        collection_name: str,
        key: str,
        metadata: Optional[str],
        embedding: str,
        timestamp: Optional[datetime],
    ) -> None:
        # MongoDB creates a missing collection on first write
        entries = self._collections.setdefault(collection_name, {})
        entries[key] = MemoryEntry(
            key=key,
            metadata=metadata or "",
            embedding=deserialize_embedding(embedding),
            timestamp=normalize_timestamp(timestamp),
            collection=collection_name,
        )

    async def get_nearest_matches(
        self,
        collection_name: str,
        embedding: str,
        limit: int,
        min_relevance_score: float = 0.0,
        with_embeddings: bool = False,
    ) -> AsyncIterator[Tuple[MemoryEntry, float]]:
        if limit <= 0:
            return

        query = np.asarray(deserialize_embedding(embedding), dtype=np.float32)
        scored: List[Tuple[MemoryEntry, float]] = []
        for entry in self._collections.get(collection_name, {}).values():
            candidate = np.asarray(entry.embedding or [], dtype=np.float32)
            score = _relevance_score(query, candidate)
            if score is not None and score >= min_relevance_score:
                scored.append((entry, score))

        scored.sort(key=lambda pair: pair[1], reverse=True)
        for entry, score in scored[:limit]:
            yield self._copy(entry, with_embeddings), score
