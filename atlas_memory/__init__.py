"""
MongoDB Atlas connector for vector memory stores.
"""

from .clients import InMemoryClient, MemoryDBClient, MongoDBClient, create_client
from .config import Config
from .entry import MemoryEntry
from .memory_store import MemoryStore, MongoDBMemoryStore
from .record import MemoryRecord, MemoryRecordMetadata

__all__ = [
    "Config",
    "InMemoryClient",
    "MemoryDBClient",
    "MemoryEntry",
    "MemoryRecord",
    "MemoryRecordMetadata",
    "MemoryStore",
    "MongoDBClient",
    "MongoDBMemoryStore",
    "create_client",
]
