"""Time helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    """Milliseconds since the epoch, used for object names and fallback IDs."""
    return int(time.time() * 1000)
