"""
Data formatting utilities that move records between the domain types and the
document shape stored in MongoDB.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .constants import (
    EMBEDDING_FIELD,
    KEY_FIELD,
    METADATA_FIELD,
    SCORE_FIELD,
    TIMESTAMP_FIELD,
)
from .entry import MemoryEntry
from .record import MemoryRecord


def serialize_embedding(embedding: Sequence[float]) -> str:
    """
    Encode a vector as a JSON array of floats.

    This is the textual form passed from the store to the clients.
    """
    vec = np.asarray(embedding, dtype=np.float32).reshape(-1)
    return json.dumps([float(v) for v in vec])


def deserialize_embedding(raw: str) -> List[float]:
    """
    Decode the JSON array produced by serialize_embedding.

    Raises:
        ValueError: if ``raw`` is not a JSON array of numbers
    """
    try:
        values = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ValueError(f"Embedding is not valid JSON: {exc}") from exc

    if not isinstance(values, list) or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
    ):
        raise ValueError("Embedding must be a JSON array of numbers.")

    return [float(v) for v in values]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_timestamp(timestamp: Optional[datetime]) -> datetime:
    """
    Return the timestamp as MongoDB stores it: aware UTC, truncated to
    milliseconds. Naive values are taken as UTC, the same as pymongo does,
    and None becomes the current time.
    """
    if timestamp is None:
        timestamp = utc_now()
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.replace(microsecond=timestamp.microsecond // 1000 * 1000)


def record_from_entry(entry: MemoryEntry) -> MemoryRecord:
    return MemoryRecord.from_json_metadata(
        entry.metadata,
        embedding=entry.embedding if entry.embedding is not None else [],
        key=entry.key,
        timestamp=entry.timestamp,
    )


def document_from_entry(entry: MemoryEntry) -> Dict[str, Any]:
    """
    Build the full document written by an upsert.

    All four fields are always present so a ``$set`` replaces every one of
    them. The timestamp goes through normalize_timestamp, so a missing one
    becomes the current time and MongoDB's millisecond precision applies.
    """
    return {
        KEY_FIELD: entry.key,
        METADATA_FIELD: entry.metadata,
        EMBEDDING_FIELD: list(entry.embedding or []),
        TIMESTAMP_FIELD: normalize_timestamp(entry.timestamp),
    }


def entry_from_document(document: Mapping[str, Any], collection: str) -> MemoryEntry:
    embedding: Optional[List[float]] = None
    if EMBEDDING_FIELD in document and document[EMBEDDING_FIELD] is not None:
        embedding = [float(v) for v in document[EMBEDDING_FIELD]]

    return MemoryEntry(
        key=document.get(KEY_FIELD, ""),
        metadata=document.get(METADATA_FIELD) or "",
        embedding=embedding,
        timestamp=document.get(TIMESTAMP_FIELD),
        collection=collection,
    )


def score_from_document(document: Mapping[str, Any]) -> float:
    return float(document.get(SCORE_FIELD, 0.0))
