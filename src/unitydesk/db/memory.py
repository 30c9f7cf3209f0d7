"""Process-local complaint store for running without a database."""

from __future__ import annotations

import uuid
from typing import Any, Optional

from unitydesk.complaints.status import StatusChange
from unitydesk.db.store import build_analytics
from unitydesk.errors import DuplicateReferenceError, NotFoundError
from unitydesk.models import Complaint, ComplaintFilters, NewComplaint
from unitydesk.utils.time import utc_now


class MemoryComplaintStore:
    """Same contract as the Postgres store; nothing survives a restart."""

    def __init__(self) -> None:
        self.complaints: dict[str, Complaint] = {}
        self.roles: dict[str, str] = {}

    async def insert(self, complaint: NewComplaint) -> Complaint:
        if any(c.reference_id == complaint.reference_id for c in self.complaints.values()):
            raise DuplicateReferenceError(complaint.reference_id)
        now = utc_now()
        stored = Complaint(
            **complaint.model_dump(),
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
        )
        self.complaints[stored.id] = stored
        return stored

    async def get_by_id(self, complaint_id: str) -> Optional[Complaint]:
        return self.complaints.get(complaint_id)

    async def get_by_reference(self, reference_id: str) -> Optional[Complaint]:
        for complaint in self.complaints.values():
            if complaint.reference_id == reference_id:
                return complaint
        return None

    async def list_complaints(self, filters: ComplaintFilters) -> list[Complaint]:
        rows = [
            c
            for c in self.complaints.values()
            if (filters.user_id is None or c.user_id == filters.user_id)
            and (filters.status is None or c.status == filters.status)
            and (filters.department is None or c.ai_department == filters.department)
            and (filters.priority is None or c.ai_priority == filters.priority)
        ]
        return sorted(rows, key=lambda c: c.created_at, reverse=True)

    def _require(self, complaint_id: str) -> Complaint:
        complaint = self.complaints.get(complaint_id)
        if complaint is None:
            raise NotFoundError(f"Complaint not found: {complaint_id}")
        return complaint

    async def update_status(self, complaint_id: str, change: StatusChange) -> Complaint:
        updated = self._require(complaint_id).model_copy(
            update={
                "status": change.status,
                "rejection_reason": change.rejection_reason,
                "updated_at": utc_now(),
            }
        )
        self.complaints[complaint_id] = updated
        return updated

    async def update_summary(self, complaint_id: str, summary: str) -> Complaint:
        updated = self._require(complaint_id).model_copy(
            update={"ai_summary": summary, "updated_at": utc_now()}
        )
        self.complaints[complaint_id] = updated
        return updated

    async def analytics(self) -> dict[str, list[dict[str, Any]]]:
        rows = list(self.complaints.values())
        return build_analytics(
            (c.ai_department for c in rows),
            (c.ai_priority.value for c in rows),
            (c.status.value for c in rows),
        )

    async def get_profile_role(self, user_id: str) -> Optional[str]:
        return self.roles.get(user_id)
