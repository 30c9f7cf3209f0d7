"""Utility helpers."""

from unitydesk.utils.logging import configure_logging, get_logger
from unitydesk.utils.text import or_none, strip_data_uri
from unitydesk.utils.time import epoch_ms, utc_now

__all__ = [
    "configure_logging",
    "get_logger",
    "or_none",
    "strip_data_uri",
    "epoch_ms",
    "utc_now",
]
