"""Shared test fixtures for the atlas_memory test suite."""

from collections.abc import Callable
from datetime import datetime

import pytest

from atlas_memory import InMemoryClient, MemoryRecord, MongoDBMemoryStore


@pytest.fixture
def client() -> InMemoryClient:
    """Create an empty in-memory client."""
    return InMemoryClient()


@pytest.fixture
def store(client: InMemoryClient) -> MongoDBMemoryStore:
    """Create a store over the in-memory client."""
    return MongoDBMemoryStore(client)


@pytest.fixture
def collection() -> str:
    return "test_collection"


@pytest.fixture
def make_record() -> Callable[..., MemoryRecord]:
    """Factory fixture building local records.

    Usage:
        def test_something(make_record):
            record = make_record("id-1", [1.0, 2.0, 3.0])
    """

    def _make_record(
        id: str = "test",
        embedding: list[float] | None = None,
        text: str = "text",
        description: str = "description",
        timestamp: datetime | None = None,
    ) -> MemoryRecord:
        return MemoryRecord.local_record(
            id=id,
            text=text,
            description=description,
            embedding=embedding if embedding is not None else [1.0, 2.0, 3.0],
            timestamp=timestamp,
        )

    return _make_record
