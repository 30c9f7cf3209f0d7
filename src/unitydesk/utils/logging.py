"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

QUIET_LOGGERS = ("httpx", "httpcore", "multipart")


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once; uvicorn logs at the same level."""
    level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # Supabase service keys and Azure keys travel with every outbound request.
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)
