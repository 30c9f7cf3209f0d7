"""Core data models for intake, storage and review."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DEPARTMENTS: tuple[str, ...] = (
    "Municipal Corporation",
    "Public Works Department",
    "Water Resources",
    "Electricity Department",
    "Police Department",
    "Health Department",
    "Transport Department",
    "Urban Development",
    "Forest Department",
    "District Administration",
)

GENERAL_DEPARTMENT = "District Administration"

Severity = Literal["Low", "Medium", "High", "Critical"]


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CamelModel(BaseModel):
    """Base for payloads exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeoPoint(BaseModel):
    lat: float
    lng: float


class ImagePayload(BaseModel):
    """One uploaded photo."""

    data: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


class VoicePayload(BaseModel):
    """One recorded voice note."""

    data: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


class RawSubmission(BaseModel):
    """Heterogeneous citizen input as received from a form or the CLI."""

    text: Optional[str] = None
    voice: Optional[VoicePayload] = None
    images: list[ImagePayload] = Field(default_factory=list)
    image_descriptions: list[str] = Field(default_factory=list)
    location_lat: Optional[str] = None
    location_lng: Optional[str] = None
    manual_location: Optional[str] = None
    ward: Optional[str] = None
    is_anonymous: bool = False
    edited_summary: Optional[str] = None
    edited_department: Optional[str] = None
    confirmed_location: Optional[GeoPoint] = None


class NormalizedInput(BaseModel):
    """Single textual representation consumed by every pipeline stage."""

    text_content: str = ""
    image_descriptions: list[str] = Field(default_factory=list)
    voice_transcript: Optional[str] = None
    location: Optional[GeoPoint] = None
    manual_location: Optional[str] = None
    ward: Optional[str] = None

    def location_hint(self) -> Optional[str]:
        """Manual address when given, else the coordinates as text."""
        if self.manual_location:
            return self.manual_location
        if self.location is not None:
            return f"{self.location.lat}, {self.location.lng}"
        return None


class LocationData(BaseModel):
    """Location confirmed by the citizen during the workflow."""

    latitude: float
    longitude: float
    address: str = ""
    landmark: Optional[str] = None
    pinned_manually: bool = False


class ComplaintData(CamelModel):
    """Citizen-reviewed complaint fields (AI suggestions after edits)."""

    type: str
    description: str
    department: str
    severity: Severity = "Medium"
    priority: str = "medium"
    additional_notes: Optional[str] = None


class NewComplaint(BaseModel):
    """Complaint row ready for insertion."""

    reference_id: str
    citizen_text: Optional[str] = None
    citizen_voice_url: Optional[str] = None
    citizen_image_urls: list[str] = Field(default_factory=list)
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None
    ward: Optional[str] = None
    ai_summary: str
    ai_department: str
    ai_issue_type: str
    ai_priority: Priority
    ai_priority_explanation: str
    ai_confidence: float = 0.0
    ai_keywords: list[str] = Field(default_factory=list)
    is_valid: bool = True
    validation_message: Optional[str] = None
    user_id: Optional[str] = None
    is_anonymous: bool = True


class Complaint(NewComplaint):
    """Persisted complaint."""

    id: str
    status: ComplaintStatus = ComplaintStatus.PENDING
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ComplaintFilters(BaseModel):
    status: Optional[ComplaintStatus] = None
    department: Optional[str] = None
    priority: Optional[Priority] = None
    user_id: Optional[str] = None


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: str = "CITIZEN"

    @property
    def is_officer(self) -> bool:
        return self.role in {"OFFICER", "ADMIN"}
