"""
Memory store exports.
"""

from .base import MemoryStore
from .mongodb_memory_store import MongoDBMemoryStore

__all__ = [
    "MemoryStore",
    "MongoDBMemoryStore",
]
