"""Request bodies and response helpers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi.responses import JSONResponse

from unitydesk.errors import status_for_code
from unitydesk.models import CamelModel, ComplaintStatus

# Pipeline rejected the complaint as not actionable.
REJECTED_STATUS = 422


class SummaryUpdate(CamelModel):
    summary: str


class StatusUpdate(CamelModel):
    status: ComplaintStatus
    reason: Optional[str] = None


def respond(result: dict[str, Any]) -> JSONResponse:
    """Service result dict as a response; failures get the matching status."""
    if result.get("success"):
        return JSONResponse(result)
    code = result.get("error", "internal")
    status = REJECTED_STATUS if code == "rejected" else status_for_code(code)
    return JSONResponse(result, status_code=status)


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": error, "message": message}, status_code=status_code
    )
