"""Officer triage endpoints. OFFICER or ADMIN role required."""

from typing import Optional

from fastapi import APIRouter, Depends

from unitydesk.api.deps import get_services, require_officer
from unitydesk.api.schemas import StatusUpdate, respond
from unitydesk.complaints import service
from unitydesk.complaints.service import AppServices
from unitydesk.models import ComplaintFilters, ComplaintStatus, Priority


router = APIRouter(
    prefix="/api/officer",
    tags=["officer"],
    dependencies=[Depends(require_officer)],
)


@router.get("/complaints")
async def list_complaints(
    status: Optional[ComplaintStatus] = None,
    department: Optional[str] = None,
    priority: Optional[Priority] = None,
    services: AppServices = Depends(get_services),
):
    filters = ComplaintFilters(status=status, department=department, priority=priority)
    return respond(await service.list_complaints(services, filters))


@router.patch("/complaints/{complaint_id}/status")
async def change_status(
    complaint_id: str,
    body: StatusUpdate,
    services: AppServices = Depends(get_services),
):
    return respond(await service.change_status(services, complaint_id, body.status, body.reason))


@router.get("/analytics")
async def analytics(services: AppServices = Depends(get_services)):
    return respond(await service.analytics(services))


@router.get("/policy")
async def policy(services: AppServices = Depends(get_services)):
    return respond(await service.policy_recommendations(services))
