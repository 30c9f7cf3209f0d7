"""Per-client rate limiting for the edge-validation endpoint."""

from __future__ import annotations

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


DEFAULT_LIMIT = "10/60 seconds"

# Set by create_app from settings; read on every request.
_validate_image_limit = {"value": DEFAULT_LIMIT}


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return get_remote_address(request) or "unknown"


def configure_validate_image_limit(value: str) -> None:
    _validate_image_limit["value"] = value


def validate_image_limit() -> str:
    return _validate_image_limit["value"]


# In-process fixed window; counters reset when the process restarts.
limiter = Limiter(key_func=client_ip, strategy="fixed-window")
