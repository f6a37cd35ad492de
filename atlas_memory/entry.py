"""
Backend-native form of a memory record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass
class MemoryEntry:
    """
    One stored document as the clients see it.

    ``metadata`` stays an opaque JSON string and ``embedding`` is None when
    the read did not request it.
    """

    key: str
    metadata: str
    embedding: Optional[List[float]] = None
    timestamp: Optional[datetime] = None
    collection: str = ""
