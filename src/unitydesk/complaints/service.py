"""Complaint submission, tracking and officer triage.

Every public coroutine here returns a plain response dict. Failures are
logged and reported as ``{"success": False, "message": ...}``; a complaint is
only written once every earlier step has succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import Field

from unitydesk.complaints.reference_id import (
    generate_reference_id,
    is_valid_reference_id,
    normalize_reference_id,
)
from unitydesk.complaints.status import apply_status_change, normalize_priority
from unitydesk.config import Settings
from unitydesk.db.memory import MemoryComplaintStore
from unitydesk.db.store import ComplaintStore, PostgresComplaintStore
from unitydesk.errors import (
    DuplicateReferenceError,
    InputError,
    NotFoundError,
    PermissionDeniedError,
    error_code,
)
from unitydesk.integrations.supabase_auth import Authenticator, NoAuth, SupabaseAuth
from unitydesk.integrations.supabase_storage import (
    MediaStorage,
    NullStorage,
    SupabaseStorage,
    object_name,
)
from unitydesk.intake.normalize import check_submission, decode_image, normalize_input
from unitydesk.models import (
    AuthUser,
    CamelModel,
    Complaint,
    ComplaintData,
    ComplaintFilters,
    ComplaintStatus,
    LocationData,
    NewComplaint,
    RawSubmission,
)
from unitydesk.pipeline.common.schemas import (
    RejectedResult,
    ValidationResult,
    VisionAnalysis,
    canonical_department,
)
from unitydesk.pipeline.intelligence import generate_policy_recommendations
from unitydesk.pipeline.llm.azure_openai import AzureOpenAIClient, CompletionClient
from unitydesk.pipeline.llm.speech import AzureSpeechClient, SpeechClient
from unitydesk.pipeline.orchestrator import process_complaint
from unitydesk.utils.logging import get_logger
from unitydesk.utils.text import data_uri_mime


logger = get_logger(__name__)

INSERT_ATTEMPTS = 3


@dataclass
class AppServices:
    """Collaborators shared by the HTTP app, the CLI and the workflow runner."""

    settings: Settings
    llm: CompletionClient
    store: ComplaintStore
    storage: MediaStorage
    auth: Authenticator
    speech: Optional[SpeechClient] = None


def build_services(settings: Optional[Settings] = None) -> AppServices:
    """Wire real clients from settings.

    The completion service is required. Speech, storage, auth and the
    database degrade to no-op or in-memory stand-ins with a warning.
    """
    settings = settings or Settings()
    settings.require_ai()
    llm = AzureOpenAIClient(settings)

    speech: Optional[SpeechClient] = None
    if settings.has_speech():
        speech = AzureSpeechClient(settings)
    else:
        logger.warning("services.speech.disabled reason=not_configured")

    store: ComplaintStore
    if settings.has_database():
        store = PostgresComplaintStore(settings)
    else:
        logger.warning("services.db.memory reason=not_configured")
        store = MemoryComplaintStore()

    storage: MediaStorage = SupabaseStorage(settings) if settings.has_storage() else NullStorage()
    auth: Authenticator = SupabaseAuth(store, settings) if settings.has_supabase_auth() else NoAuth()

    return AppServices(
        settings=settings,
        llm=llm,
        store=store,
        storage=storage,
        auth=auth,
        speech=speech,
    )


class WorkflowSubmission(CamelModel):
    """Final payload of the step-by-step submission workflow."""

    images: list[str] = Field(default_factory=list)
    complaint_data: ComplaintData
    location: Optional[LocationData] = None
    ai_analysis: VisionAnalysis
    is_anonymous: bool = True


def _failure(exc: Exception, default: str) -> dict[str, Any]:
    return {"success": False, "error": error_code(exc), "message": str(exc) or default}


def _rejection(validation: ValidationResult) -> dict[str, Any]:
    return {
        "success": False,
        "error": "rejected",
        "message": validation.validation_message or "Complaint validation failed",
        "needsClarification": validation.needs_clarification,
        "clarificationQuestions": validation.clarification_questions,
    }


async def _insert_with_reference(
    store: ComplaintStore, department: str, fields: dict[str, Any]
) -> Complaint:
    """Insert with a fresh reference ID, retrying when the ID is already taken."""
    issued: set[str] = set()
    for attempt in range(1, INSERT_ATTEMPTS + 1):
        reference_id = generate_reference_id(department, issued)
        try:
            return await store.insert(NewComplaint(reference_id=reference_id, **fields))
        except DuplicateReferenceError:
            logger.warning(
                "complaint.reference_id.collision reference_id=%s attempt=%s",
                reference_id,
                attempt,
            )
            issued.add(reference_id)
    raise DuplicateReferenceError("Could not issue a unique reference ID")


async def _run_pipeline(services: AppServices, raw: RawSubmission):
    check_submission(raw, services.settings)
    normalized = await normalize_input(raw, services.llm, services.speech)
    if not normalized.text_content and not normalized.image_descriptions:
        raise InputError("Please describe the issue or attach a photo")
    result = await process_complaint(services.llm, normalized, services.settings.prompt_version)
    return normalized, result


async def analyze_before_submit(services: AppServices, raw: RawSubmission) -> dict[str, Any]:
    """Run the pipeline for the preview screen without saving anything."""
    try:
        normalized, result = await _run_pipeline(services, raw)
        if isinstance(result, RejectedResult):
            return _rejection(result.validation)

        return {
            "success": True,
            "analysis": {
                "summary": result.summarization.citizen_summary,
                "department": result.classification.department,
                "issueType": result.classification.issue_type,
                "priority": result.scoring.priority,
                "keywords": result.summarization.keywords,
                "imageDescriptions": normalized.image_descriptions,
            },
        }
    except Exception as exc:
        logger.exception("complaint.preview.failed")
        return _failure(exc, "Failed to analyze complaint")


async def submit_complaint(
    services: AppServices, raw: RawSubmission, user: Optional[AuthUser] = None
) -> dict[str, Any]:
    """Analyze, store media and save one complaint from the form flow.

    A failed media upload fails the whole submission.
    """
    try:
        normalized, result = await _run_pipeline(services, raw)
        if isinstance(result, RejectedResult):
            return _rejection(result.validation)

        settings = services.settings
        voice_url: Optional[str] = None
        if raw.voice is not None and raw.voice.data:
            voice_url = await services.storage.upload(
                settings.voice_bucket,
                object_name(raw.voice.filename, "voice.webm"),
                raw.voice.data,
                raw.voice.content_type,
            )

        image_urls: list[str] = []
        for index, image in enumerate(raw.images):
            url = await services.storage.upload(
                settings.image_bucket,
                object_name(image.filename, f"image_{index}.jpg"),
                image.data,
                image.content_type,
            )
            if url:
                image_urls.append(url)

        summary = (raw.edited_summary or "").strip() or result.summarization.citizen_summary
        department = (
            canonical_department(raw.edited_department)
            if raw.edited_department
            else result.classification.department
        )
        location = raw.confirmed_location or normalized.location

        complaint = await _insert_with_reference(
            services.store,
            department,
            {
                "citizen_text": raw.text,
                "citizen_voice_url": voice_url,
                "citizen_image_urls": image_urls,
                "location_lat": location.lat if location else None,
                "location_lng": location.lng if location else None,
                "location_address": normalized.manual_location,
                "ward": normalized.ward,
                "ai_summary": summary,
                "ai_department": department,
                "ai_issue_type": result.classification.issue_type,
                "ai_priority": result.scoring.priority,
                "ai_priority_explanation": result.scoring.explanation,
                "ai_confidence": result.classification.confidence,
                "ai_keywords": result.summarization.keywords,
                "is_valid": True,
                "validation_message": result.validation.validation_message,
                "user_id": user.id if user else None,
                "is_anonymous": user is None or raw.is_anonymous,
            },
        )
    except Exception as exc:
        logger.exception("complaint.submit.failed")
        return _failure(exc, "Failed to submit complaint")

    logger.info(
        "complaint.submitted reference_id=%s department=%s",
        complaint.reference_id,
        complaint.ai_department,
    )
    return {
        "success": True,
        "complaintId": complaint.id,
        "referenceId": complaint.reference_id,
        "summary": complaint.ai_summary,
        "department": complaint.ai_department,
        "priority": complaint.ai_priority.value,
    }


async def _upload_workflow_images(services: AppServices, images: list[str]) -> list[str]:
    """Upload what can be uploaded; a bad image is skipped, not fatal."""
    urls: list[str] = []
    for index, image in enumerate(images):
        try:
            data = decode_image(image)
            url = await services.storage.upload(
                services.settings.image_bucket,
                object_name(f"{index}.jpg"),
                data,
                data_uri_mime(image) or "image/jpeg",
            )
        except Exception:
            logger.exception("complaint.workflow.image_upload_failed index=%s", index)
            continue
        if url:
            urls.append(url)
    return urls


async def submit_from_workflow(
    services: AppServices, payload: WorkflowSubmission, user: Optional[AuthUser] = None
) -> dict[str, Any]:
    """Save a complaint the citizen has already reviewed and edited."""
    try:
        data = payload.complaint_data
        image_urls = await _upload_workflow_images(services, payload.images)
        priority = normalize_priority(data.priority)
        department = canonical_department(data.department)
        location = payload.location

        complaint = await _insert_with_reference(
            services.store,
            department,
            {
                "citizen_text": data.description,
                "citizen_image_urls": image_urls,
                "location_lat": location.latitude if location else None,
                "location_lng": location.longitude if location else None,
                "location_address": (location.address or None) if location else None,
                "ai_summary": data.description,
                "ai_department": department,
                "ai_issue_type": data.type,
                "ai_priority": priority,
                "ai_priority_explanation": (
                    f"Priority set to {data.priority} based on AI analysis of the "
                    "complaint severity and urgency."
                ),
                "ai_confidence": payload.ai_analysis.confidence_score,
                "ai_keywords": payload.ai_analysis.keywords,
                "is_valid": True,
                "user_id": user.id if user else None,
                "is_anonymous": payload.is_anonymous,
            },
        )
    except Exception as exc:
        logger.exception("complaint.workflow.submit_failed")
        return _failure(exc, "Failed to submit complaint")

    logger.info("complaint.workflow.submitted reference_id=%s", complaint.reference_id)
    return {
        "success": True,
        "complaintId": complaint.id,
        "referenceId": complaint.reference_id,
        "department": department,
        "priority": priority.value,
        "severity": data.severity or "Medium",
        "summary": data.description,
        "estimatedResolution": payload.ai_analysis.estimated_resolution_time or "5-7 days",
    }


async def _find_by_reference(services: AppServices, reference: str) -> Complaint:
    reference_id = normalize_reference_id(reference)
    if not is_valid_reference_id(reference_id):
        raise InputError(f"Invalid reference ID: {reference}")
    complaint = await services.store.get_by_reference(reference_id)
    if complaint is None:
        raise NotFoundError(f"Complaint not found: {reference_id}")
    return complaint


def _public_view(complaint: Complaint) -> dict[str, Any]:
    # Owner id and raw citizen input stay private.
    return {
        "referenceId": complaint.reference_id,
        "summary": complaint.ai_summary,
        "department": complaint.ai_department,
        "issueType": complaint.ai_issue_type,
        "priority": complaint.ai_priority.value,
        "status": complaint.status.value,
        "rejectionReason": complaint.rejection_reason,
        "locationAddress": complaint.location_address,
        "ward": complaint.ward,
        "createdAt": complaint.created_at.isoformat(),
        "updatedAt": complaint.updated_at.isoformat(),
    }


async def track_status(services: AppServices, reference: str) -> dict[str, Any]:
    """Public status lookup by reference ID."""
    try:
        complaint = await _find_by_reference(services, reference)
    except Exception as exc:
        logger.info("complaint.track.failed reference=%s error=%s", reference, exc)
        return _failure(exc, "Failed to track complaint")

    return {
        "success": True,
        "referenceId": complaint.reference_id,
        "status": complaint.status.value,
        "department": complaint.ai_department,
        "priority": complaint.ai_priority.value,
        "rejectionReason": complaint.rejection_reason,
        "createdAt": complaint.created_at.isoformat(),
        "updatedAt": complaint.updated_at.isoformat(),
    }


async def get_by_reference(services: AppServices, reference: str) -> dict[str, Any]:
    try:
        complaint = await _find_by_reference(services, reference)
    except Exception as exc:
        logger.info("complaint.lookup.failed reference=%s error=%s", reference, exc)
        return _failure(exc, "Failed to fetch complaint")
    return {"success": True, "complaint": _public_view(complaint)}


async def list_complaints(services: AppServices, filters: ComplaintFilters) -> dict[str, Any]:
    try:
        complaints = await services.store.list_complaints(filters)
    except Exception as exc:
        logger.exception("complaint.list.failed")
        return {**_failure(exc, "Failed to fetch complaints"), "complaints": []}
    return {
        "success": True,
        "complaints": [c.model_dump(mode="json") for c in complaints],
    }


async def change_status(
    services: AppServices,
    complaint_id: str,
    status: ComplaintStatus,
    reason: Optional[str] = None,
) -> dict[str, Any]:
    """Officer status change; see ``complaints.status`` for the allowed moves."""
    try:
        complaint = await services.store.get_by_id(complaint_id)
        if complaint is None:
            raise NotFoundError(f"Complaint not found: {complaint_id}")
        change = apply_status_change(complaint.status, status, reason)
        updated = await services.store.update_status(complaint_id, change)
    except Exception as exc:
        logger.warning("complaint.status.failed id=%s error=%s", complaint_id, exc)
        return _failure(exc, "Failed to update status")

    logger.info(
        "complaint.status.changed id=%s from=%s to=%s",
        complaint_id,
        complaint.status.value,
        updated.status.value,
    )
    return {"success": True, "complaint": updated.model_dump(mode="json")}


def _may_edit(complaint: Complaint, user: Optional[AuthUser]) -> bool:
    if not complaint.user_id:
        return True
    if user is None:
        return False
    return user.is_officer or complaint.user_id == user.id


async def update_summary(
    services: AppServices,
    complaint_id: str,
    summary: str,
    user: Optional[AuthUser] = None,
) -> dict[str, Any]:
    """Replace the AI summary. Owned complaints need the owner or an officer."""
    try:
        cleaned = (summary or "").strip()
        if not cleaned:
            raise InputError("Summary cannot be empty")
        complaint = await services.store.get_by_id(complaint_id)
        if complaint is None:
            raise NotFoundError(f"Complaint not found: {complaint_id}")
        if not _may_edit(complaint, user):
            raise PermissionDeniedError("You can only edit your own complaints")
        await services.store.update_summary(complaint_id, cleaned)
    except Exception as exc:
        logger.warning("complaint.summary.failed id=%s error=%s", complaint_id, exc)
        return _failure(exc, "Failed to update summary")
    return {"success": True}


async def analytics(services: AppServices) -> dict[str, Any]:
    try:
        data = await services.store.analytics()
    except Exception:
        logger.exception("complaint.analytics.failed")
        return {"success": False, "error": "internal", "message": "Failed to fetch analytics"}
    return {
        "success": True,
        "data": {
            "byDepartment": data["by_department"],
            "byPriority": data["by_priority"],
            "byStatus": data["by_status"],
        },
    }


async def policy_recommendations(services: AppServices) -> dict[str, Any]:
    try:
        complaints = await services.store.list_complaints(ComplaintFilters())
    except Exception as exc:
        logger.exception("complaint.policy.failed")
        return _failure(exc, "Failed to load complaints")

    recent = [
        {
            "department": c.ai_department,
            "issue_type": c.ai_issue_type,
            "priority": c.ai_priority.value,
            "status": c.status.value,
            "ward": c.ward,
            "created_at": c.created_at,
        }
        for c in complaints
    ]
    recommendations = await generate_policy_recommendations(
        services.llm, recent, services.settings.prompt_version
    )
    return {
        "success": True,
        "recommendations": [r.model_dump() for r in recommendations],
    }
