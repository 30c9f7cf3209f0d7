"""Text helpers."""

from __future__ import annotations

import re
from typing import Optional


def strip_data_uri(value: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix if present."""
    if "base64," in value:
        return value.split("base64,", maxsplit=1)[1]
    return value


def data_uri_mime(value: str) -> Optional[str]:
    """Return the MIME type declared by a data URI, if any."""
    match = re.match(r"^data:([\w.+-]+/[\w.+-]+);base64,", value)
    return match.group(1) if match else None


def or_none(value: Optional[str]) -> Optional[str]:
    """Return stripped text, or None when empty."""
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None
