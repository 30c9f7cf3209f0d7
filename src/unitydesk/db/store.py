"""Complaint persistence over Postgres."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

import psycopg
from psycopg import sql

from unitydesk.complaints.status import StatusChange
from unitydesk.config import Settings
from unitydesk.db.client import async_db_cursor
from unitydesk.errors import DuplicateReferenceError, NotFoundError
from unitydesk.models import Complaint, ComplaintFilters, ComplaintStatus, NewComplaint, Priority
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

INSERT_COLUMNS: tuple[str, ...] = (
    "reference_id",
    "citizen_text",
    "citizen_voice_url",
    "citizen_image_urls",
    "location_lat",
    "location_lng",
    "location_address",
    "ward",
    "ai_summary",
    "ai_department",
    "ai_issue_type",
    "ai_priority",
    "ai_priority_explanation",
    "ai_confidence",
    "ai_keywords",
    "is_valid",
    "validation_message",
    "user_id",
    "is_anonymous",
)

SELECT_COLUMNS = "id::text as id, user_id::text as user_id, " + ", ".join(
    column for column in INSERT_COLUMNS if column != "user_id"
) + ", status, rejection_reason, created_at, updated_at"


class ComplaintStore(Protocol):
    async def insert(self, complaint: NewComplaint) -> Complaint: ...

    async def get_by_id(self, complaint_id: str) -> Optional[Complaint]: ...

    async def get_by_reference(self, reference_id: str) -> Optional[Complaint]: ...

    async def list_complaints(self, filters: ComplaintFilters) -> list[Complaint]: ...

    async def update_status(self, complaint_id: str, change: StatusChange) -> Complaint: ...

    async def update_summary(self, complaint_id: str, summary: str) -> Complaint: ...

    async def analytics(self) -> dict[str, list[dict[str, Any]]]: ...

    async def get_profile_role(self, user_id: str) -> Optional[str]: ...


def _title(value: str) -> str:
    return " ".join(word.capitalize() for word in value.split("_"))


def build_analytics(
    departments: Iterable[str],
    priorities: Iterable[str],
    statuses: Iterable[str],
) -> dict[str, list[dict[str, Any]]]:
    """Counts per department, priority and status for the officer dashboard."""
    by_department: dict[str, int] = {}
    for department in departments:
        by_department[department] = by_department.get(department, 0) + 1

    priority_list = list(priorities)
    status_list = list(statuses)
    return {
        "by_department": [
            {"name": name, "value": value} for name, value in by_department.items()
        ],
        "by_priority": [
            {"name": _title(p.value), "value": priority_list.count(p.value)} for p in Priority
        ],
        "by_status": [
            {"name": _title(s.value), "value": status_list.count(s.value)}
            for s in ComplaintStatus
        ],
    }


def _row_to_complaint(row: dict[str, Any]) -> Complaint:
    data = dict(row)
    data["citizen_image_urls"] = data.get("citizen_image_urls") or []
    data["ai_keywords"] = data.get("ai_keywords") or []
    return Complaint.model_validate(data)


class PostgresComplaintStore:
    """SQL over ``public.complaints`` and ``public.profiles``."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    async def insert(self, complaint: NewComplaint) -> Complaint:
        values = complaint.model_dump(include=set(INSERT_COLUMNS), mode="json")
        query = sql.SQL(
            "insert into public.complaints ({columns}) values ({placeholders}) "
            "returning " + SELECT_COLUMNS
        ).format(
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in INSERT_COLUMNS),
            placeholders=sql.SQL(", ").join(sql.Placeholder() for _ in INSERT_COLUMNS),
        )
        try:
            async with async_db_cursor(self.settings) as cursor:
                await cursor.execute(query, [values[c] for c in INSERT_COLUMNS])
                row = await cursor.fetchone()
        except psycopg.errors.UniqueViolation as exc:
            raise DuplicateReferenceError(complaint.reference_id) from exc

        logger.info("complaint.inserted reference_id=%s", complaint.reference_id)
        return _row_to_complaint(row)

    async def _fetch_one(self, where: str, value: str) -> Optional[Complaint]:
        async with async_db_cursor(self.settings) as cursor:
            await cursor.execute(
                f"select {SELECT_COLUMNS} from public.complaints where {where} = %s",
                (value,),
            )
            row = await cursor.fetchone()
        return _row_to_complaint(row) if row else None

    async def get_by_id(self, complaint_id: str) -> Optional[Complaint]:
        return await self._fetch_one("id::text", complaint_id)

    async def get_by_reference(self, reference_id: str) -> Optional[Complaint]:
        return await self._fetch_one("reference_id", reference_id)

    async def list_complaints(self, filters: ComplaintFilters) -> list[Complaint]:
        clauses: list[str] = []
        params: list[Any] = []
        if filters.user_id:
            clauses.append("user_id::text = %s")
            params.append(filters.user_id)
        if filters.status:
            clauses.append("status = %s")
            params.append(filters.status.value)
        if filters.department:
            clauses.append("ai_department = %s")
            params.append(filters.department)
        if filters.priority:
            clauses.append("ai_priority = %s")
            params.append(filters.priority.value)

        where = f" where {' and '.join(clauses)}" if clauses else ""
        async with async_db_cursor(self.settings) as cursor:
            await cursor.execute(
                f"select {SELECT_COLUMNS} from public.complaints{where} "
                "order by created_at desc",
                params,
            )
            rows = await cursor.fetchall()
        return [_row_to_complaint(row) for row in rows]

    async def _update(self, complaint_id: str, assignments: str, params: list[Any]) -> Complaint:
        async with async_db_cursor(self.settings) as cursor:
            await cursor.execute(
                f"update public.complaints set {assignments}, updated_at = now() "
                f"where id::text = %s returning {SELECT_COLUMNS}",
                [*params, complaint_id],
            )
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"Complaint not found: {complaint_id}")
        return _row_to_complaint(row)

    async def update_status(self, complaint_id: str, change: StatusChange) -> Complaint:
        return await self._update(
            complaint_id,
            "status = %s, rejection_reason = %s",
            [change.status.value, change.rejection_reason],
        )

    async def update_summary(self, complaint_id: str, summary: str) -> Complaint:
        return await self._update(complaint_id, "ai_summary = %s", [summary])

    async def analytics(self) -> dict[str, list[dict[str, Any]]]:
        async with async_db_cursor(self.settings) as cursor:
            await cursor.execute(
                "select ai_department, ai_priority, status from public.complaints"
            )
            rows = await cursor.fetchall()
        return build_analytics(
            (row["ai_department"] for row in rows),
            (row["ai_priority"] for row in rows),
            (row["status"] for row in rows),
        )

    async def get_profile_role(self, user_id: str) -> Optional[str]:
        async with async_db_cursor(self.settings) as cursor:
            await cursor.execute(
                "select role from public.profiles where id::text = %s", (user_id,)
            )
            row = await cursor.fetchone()
        return row["role"] if row else None
