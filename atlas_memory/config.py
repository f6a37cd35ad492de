"""
Configuration management for the atlas_memory connector.

Values are primarily sourced from environment variables. The host application
may also build a Config directly and pass it to MongoDBMemoryStore.from_config.
"""

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from .constants import (
    SUPPORTED_BACKENDS,
    DEFAULT_DATABASE_NAME,
    DEFAULT_INDEX_NAME,
    DEFAULT_NUM_CANDIDATES_MULTIPLIER,
    EMBEDDING_FIELD,
)


load_dotenv()


@dataclass
class Config:
    # Memory store backend
    backend: str = os.getenv("MEMORY_STORE_BACKEND", "mongodb")

    # MongoDB Atlas backend configuration
    mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    mongodb_database_name: str = os.getenv("MONGODB_DATABASE_NAME", DEFAULT_DATABASE_NAME)
    mongodb_index_name: str = os.getenv("MONGODB_INDEX_NAME", DEFAULT_INDEX_NAME)
    mongodb_embedding_path: str = os.getenv("MONGODB_EMBEDDING_PATH", EMBEDDING_FIELD)
    mongodb_num_candidates_multiplier: int = int(
        os.getenv("MONGODB_NUM_CANDIDATES_MULTIPLIER", str(DEFAULT_NUM_CANDIDATES_MULTIPLIER))
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def validate(self) -> None:
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported backend '{self.backend}'. "
                f"Supported backends: {SUPPORTED_BACKENDS}"
            )

        if self.backend == "mongodb":
            if not self.mongodb_uri:
                raise ValueError("MONGODB_URI must be set when using the mongodb backend.")
            if not self.mongodb_database_name:
                raise ValueError(
                    "MONGODB_DATABASE_NAME must be set when using the mongodb backend."
                )

        if self.mongodb_num_candidates_multiplier <= 0:
            raise ValueError(
                "MONGODB_NUM_CANDIDATES_MULTIPLIER must be a positive integer, "
                f"got {self.mongodb_num_candidates_multiplier}."
            )
