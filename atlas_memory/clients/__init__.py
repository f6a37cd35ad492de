"""
Database client factory and exports.
"""

from ..config import Config
from .base import MemoryDBClient
from .inmemory_client import InMemoryClient
from .mongodb_client import MongoDBClient


def create_client(cfg: Config) -> MemoryDBClient:
    """
    Build the client selected by ``cfg.backend``.
    """
    cfg.validate()

    if cfg.backend == "mongodb":
        return MongoDBClient(
            connection_string=cfg.mongodb_uri,
            database_name=cfg.mongodb_database_name,
            index_name=cfg.mongodb_index_name,
            embedding_path=cfg.mongodb_embedding_path,
            num_candidates_multiplier=cfg.mongodb_num_candidates_multiplier,
        )
    if cfg.backend == "inmemory":
        return InMemoryClient()

    raise ValueError(f"Unsupported backend: {cfg.backend}")


__all__ = [
    "MemoryDBClient",
    "MongoDBClient",
    "InMemoryClient",
    "create_client",
]
