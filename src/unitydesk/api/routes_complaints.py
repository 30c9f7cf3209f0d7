"""Citizen submission, preview and tracking endpoints."""

from typing import List, Optional

import orjson
from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError
from starlette.datastructures import FormData, UploadFile

from unitydesk.api.deps import current_user, get_services, require_user
from unitydesk.api.schemas import SummaryUpdate, respond
from unitydesk.complaints import service
from unitydesk.complaints.service import AppServices, WorkflowSubmission
from unitydesk.errors import InputError
from unitydesk.models import (
    AuthUser,
    ComplaintFilters,
    GeoPoint,
    ImagePayload,
    RawSubmission,
    VoicePayload,
)
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["complaints"])


def _text(form: FormData, key: str) -> Optional[str]:
    value = form.get(key)
    return value if isinstance(value, str) else None


def _uploads(form: FormData) -> List[UploadFile]:
    """Files sent as repeated ``images`` or as ``image-0``, ``image-1``..."""
    files: List[UploadFile] = [f for f in form.getlist("images") if isinstance(f, UploadFile)]
    numbered = sorted(
        (key for key in form.keys() if key.startswith("image-")),
        key=lambda key: int(key.split("-", 1)[1]) if key.split("-", 1)[1].isdigit() else 0,
    )
    for key in numbered:
        value = form.get(key)
        if isinstance(value, UploadFile) and value not in files:
            files.append(value)
    return files


def _confirmed_location(raw: Optional[str]) -> Optional[GeoPoint]:
    if not raw:
        return None
    try:
        return GeoPoint.model_validate(orjson.loads(raw))
    except (orjson.JSONDecodeError, ValidationError):
        logger.warning("api.form.location_invalid value=%s", raw[:100])
        return None


async def read_submission(request: Request) -> RawSubmission:
    """Multipart complaint form into a RawSubmission."""
    try:
        form = await request.form()
    except Exception as exc:
        raise InputError("Expected a multipart form") from exc

    voice: Optional[VoicePayload] = None
    voice_file = form.get("voice")
    if isinstance(voice_file, UploadFile):
        data = await voice_file.read()
        if data:
            voice = VoicePayload(
                data=data, filename=voice_file.filename, content_type=voice_file.content_type
            )

    images: List[ImagePayload] = []
    for upload in _uploads(form):
        data = await upload.read()
        if data:
            images.append(
                ImagePayload(data=data, filename=upload.filename, content_type=upload.content_type)
            )

    return RawSubmission(
        text=_text(form, "text"),
        voice=voice,
        images=images,
        image_descriptions=[d for d in form.getlist("imageDescriptions") if isinstance(d, str)],
        location_lat=_text(form, "locationLat"),
        location_lng=_text(form, "locationLng"),
        manual_location=_text(form, "address"),
        ward=_text(form, "ward"),
        is_anonymous=_text(form, "isAnonymous") == "true",
        edited_summary=_text(form, "editedSummary"),
        edited_department=_text(form, "editedDepartment"),
        confirmed_location=_confirmed_location(_text(form, "location")),
    )


@router.post("/complaints")
async def submit_complaint(
    request: Request,
    services: AppServices = Depends(get_services),
    user: Optional[AuthUser] = Depends(current_user),
):
    raw = await read_submission(request)
    return respond(await service.submit_complaint(services, raw, user))


@router.post("/complaints/preview")
async def preview_complaint(request: Request, services: AppServices = Depends(get_services)):
    raw = await read_submission(request)
    return respond(await service.analyze_before_submit(services, raw))


@router.post("/complaints/workflow")
async def submit_workflow(
    payload: WorkflowSubmission,
    services: AppServices = Depends(get_services),
    user: Optional[AuthUser] = Depends(current_user),
):
    return respond(await service.submit_from_workflow(services, payload, user))


@router.get("/status")
async def track_status(ref: str = Query(...), services: AppServices = Depends(get_services)):
    return respond(await service.track_status(services, ref))


@router.get("/complaints/reference/{reference_id}")
async def get_by_reference(reference_id: str, services: AppServices = Depends(get_services)):
    return respond(await service.get_by_reference(services, reference_id))


@router.patch("/complaints/{complaint_id}/summary")
async def update_summary(
    complaint_id: str,
    body: SummaryUpdate,
    services: AppServices = Depends(get_services),
    user: Optional[AuthUser] = Depends(current_user),
):
    return respond(await service.update_summary(services, complaint_id, body.summary, user))


@router.get("/my-complaints")
async def my_complaints(
    services: AppServices = Depends(get_services),
    user: AuthUser = Depends(require_user),
):
    return respond(await service.list_complaints(services, ComplaintFilters(user_id=user.id)))
