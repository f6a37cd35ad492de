"""
Domain types for records kept in a memory store.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import numpy as np


def _as_vector(embedding: Optional[Sequence[float]]) -> np.ndarray:
    if embedding is None:
        return np.array([], dtype=np.float32)
    return np.asarray(embedding, dtype=np.float32).reshape(-1)


@dataclass
class MemoryRecordMetadata:
    """
    Descriptive payload of a record.

    Stored as an opaque JSON string next to the embedding; only the store
    and the host framework look inside it.
    """

    is_reference: bool
    external_source_name: str
    id: str
    description: str
    text: str
    additional_metadata: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "MemoryRecordMetadata":
        try:
            data = json.loads(raw) if raw else {}
        except json.JSONDecodeError as exc:
            raise ValueError(f"Record metadata is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError(
                f"Record metadata must be a JSON object, got {type(data).__name__}."
            )

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {k: v for k, v in data.items() if k in known}
        is_reference = values.get("is_reference", False)
        if not isinstance(is_reference, bool):
            raise ValueError(
                f"is_reference must be a JSON boolean, got {type(is_reference).__name__}."
            )

        return cls(
            is_reference=is_reference,
            external_source_name=values.get("external_source_name") or "",
            id=values.get("id") or "",
            description=values.get("description") or "",
            text=values.get("text") or "",
            additional_metadata=values.get("additional_metadata") or "",
        )


@dataclass(eq=False)
class MemoryRecord:
    """
    A record: metadata, an embedding vector, a key and an optional timestamp.

    The embedding is always a 1-D float32 array. A record read without its
    embedding holds an empty array, never None.
    """

    metadata: MemoryRecordMetadata
    embedding: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float32))
    key: str = ""
    timestamp: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.embedding = _as_vector(self.embedding)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MemoryRecord):
            return NotImplemented
        return (
            self.metadata == other.metadata
            and self.key == other.key
            and self.timestamp == other.timestamp
            and np.array_equal(self.embedding, other.embedding)
        )

    @classmethod
    def local_record(
        cls,
        id: str,
        text: str,
        description: str,
        embedding: Sequence[float],
        additional_metadata: str = "",
        key: str = "",
        timestamp: Optional[datetime] = None,
    ) -> "MemoryRecord":
        """Record for content authored locally (not a reference)."""
        metadata = MemoryRecordMetadata(
            is_reference=False,
            external_source_name="",
            id=id,
            description=description,
            text=text,
            additional_metadata=additional_metadata,
        )
        return cls(metadata=metadata, embedding=embedding, key=key, timestamp=timestamp)

    @classmethod
    def reference_record(
        cls,
        external_id: str,
        source_name: str,
        description: str,
        embedding: Sequence[float],
        additional_metadata: str = "",
        key: str = "",
        timestamp: Optional[datetime] = None,
    ) -> "MemoryRecord":
        """Record pointing to content held by an external source."""
        metadata = MemoryRecordMetadata(
            is_reference=True,
            external_source_name=source_name,
            id=external_id,
            description=description,
            text="",
            additional_metadata=additional_metadata,
        )
        return cls(metadata=metadata, embedding=embedding, key=key, timestamp=timestamp)

    @classmethod
    def from_metadata(
        cls,
        metadata: MemoryRecordMetadata,
        embedding: Optional[Sequence[float]] = None,
        key: str = "",
        timestamp: Optional[datetime] = None,
    ) -> "MemoryRecord":
        return cls(metadata=metadata, embedding=embedding, key=key, timestamp=timestamp)

    @classmethod
    def from_json_metadata(
        cls,
        json_metadata: str,
        embedding: Optional[Sequence[float]] = None,
        key: str = "",
        timestamp: Optional[datetime] = None,
    ) -> "MemoryRecord":
        return cls.from_metadata(
            MemoryRecordMetadata.from_json(json_metadata),
            embedding=embedding,
            key=key,
            timestamp=timestamp,
        )

    def serialized_metadata(self) -> str:
        return self.metadata.to_json()
