"""
Project-wide constants that are unlikely to change at runtime.
"""

from typing import Final, List

SUPPORTED_BACKENDS: Final[List[str]] = ["mongodb", "inmemory"]

# Document field names used in every MongoDB collection
KEY_FIELD: Final[str] = "key"
METADATA_FIELD: Final[str] = "metadata"
EMBEDDING_FIELD: Final[str] = "embedding"
TIMESTAMP_FIELD: Final[str] = "timestamp"
SCORE_FIELD: Final[str] = "score"

# Fields returned by every read; the embedding is opt-in
BASE_PROJECTION_FIELDS: Final[List[str]] = [
    KEY_FIELD,
    METADATA_FIELD,
    TIMESTAMP_FIELD,
]

# Atlas Vector Search defaults
DEFAULT_INDEX_NAME: Final[str] = "default"
DEFAULT_NUM_CANDIDATES_MULTIPLIER: Final[int] = 10

DEFAULT_DATABASE_NAME: Final[str] = "semantic_memory"

# $vectorSearch rejects numCandidates above this
MAX_NUM_CANDIDATES: Final[int] = 10000
