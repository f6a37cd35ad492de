"""
Logging configuration shared by the store, the clients and the debug CLI.
"""

import logging
from typing import Optional


def configure_logging(level: str = "INFO") -> None:
    numeric_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    # pymongo is chatty at DEBUG; keep it one notch quieter than the app
    logging.getLogger("pymongo").setLevel(max(numeric_level, logging.INFO))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or __name__)
