import base64

from conftest import STREETLIGHT, FakeSpeech, vision_analysis
from unitydesk.complaints import service
from unitydesk.complaints.reference_id import is_valid_reference_id
from unitydesk.complaints.service import WorkflowSubmission
from unitydesk.db.memory import MemoryComplaintStore
from unitydesk.errors import DuplicateReferenceError, ExternalServiceError
from unitydesk.models import (
    AuthUser,
    ComplaintData,
    ComplaintFilters,
    ComplaintStatus,
    GeoPoint,
    ImagePayload,
    LocationData,
    RawSubmission,
    VoicePayload,
)
from unitydesk.pipeline.common.schemas import ScoringResult, ValidationResult


class CollidingStore(MemoryComplaintStore):
    """Reports the first ``collisions`` inserts as duplicate reference IDs."""

    def __init__(self, collisions: int) -> None:
        super().__init__()
        self.collisions = collisions
        self.attempted: list[str] = []

    async def insert(self, complaint):
        self.attempted.append(complaint.reference_id)
        if len(self.attempted) <= self.collisions:
            raise DuplicateReferenceError(complaint.reference_id)
        return await super().insert(complaint)


def _workflow_payload(**overrides) -> WorkflowSubmission:
    data = {
        "images": [],
        "complaint_data": ComplaintData(
            type="Pothole",
            description="Large pothole on the main road",
            department="Public Works Department",
            severity="High",
            priority="Urgent",
        ),
        "location": LocationData(latitude=28.61, longitude=77.2, address="MG Road"),
        "ai_analysis": vision_analysis(),
        "is_anonymous": True,
    }
    data.update(overrides)
    return WorkflowSubmission(**data)


async def test_submit_persists_complaint(services, store):
    raw = RawSubmission(text=STREETLIGHT, location_lat="28.61", location_lng="77.2", ward="7")

    result = await service.submit_complaint(services, raw)

    assert result["success"]
    assert result["department"] == "Electricity Department"
    assert result["priority"] == "medium"
    assert result["referenceId"].startswith("ED")
    assert is_valid_reference_id(result["referenceId"])

    saved = store.complaints[result["complaintId"]]
    assert saved.status is ComplaintStatus.PENDING
    assert saved.rejection_reason is None
    assert saved.location_lat == 28.61
    assert saved.ward == "7"
    assert saved.is_anonymous


async def test_submit_applies_citizen_overrides(services, store):
    user = AuthUser(id="user-1")
    raw = RawSubmission(
        text=STREETLIGHT,
        edited_summary="  My own words  ",
        edited_department="water resources",
        confirmed_location=GeoPoint(lat=12.9, lng=77.6),
    )

    result = await service.submit_complaint(services, raw, user)

    saved = store.complaints[result["complaintId"]]
    assert saved.ai_summary == "My own words"
    assert saved.ai_department == "Water Resources"
    assert saved.reference_id.startswith("WR")
    assert (saved.location_lat, saved.location_lng) == (12.9, 77.6)
    assert saved.user_id == "user-1"
    assert not saved.is_anonymous


async def test_rejected_submission_is_not_stored(services, store, llm):
    llm.structured[ValidationResult] = ValidationResult(
        is_valid=False,
        needs_clarification=True,
        clarification_questions=["Which street?"],
        validation_message="Please add details",
    )

    result = await service.submit_complaint(services, RawSubmission(text="something happened"))

    assert result == {
        "success": False,
        "error": "rejected",
        "message": "Please add details",
        "needsClarification": True,
        "clarificationQuestions": ["Which street?"],
    }
    assert store.complaints == {}


async def test_stage_failure_writes_nothing(services, store, llm):
    llm.structured[ScoringResult] = ExternalServiceError("model overloaded")

    result = await service.submit_complaint(services, RawSubmission(text=STREETLIGHT))

    assert not result["success"]
    assert result["error"] == "external_service"
    assert store.complaints == {}


async def test_empty_submission_is_invalid_input(services, llm):
    result = await service.submit_complaint(services, RawSubmission(text="   "))
    assert result["error"] == "invalid_input"
    assert llm.calls == []


async def test_upload_failure_fails_form_submission(services, store, storage):
    storage.fail = True
    raw = RawSubmission(
        text=STREETLIGHT,
        images=[ImagePayload(data=b"\xff\xd8", content_type="image/jpeg")],
        image_descriptions=["A dark street"],
    )

    result = await service.submit_complaint(services, raw)

    assert not result["success"]
    assert "upload" in result["message"]
    assert store.complaints == {}


async def test_voice_is_transcribed_and_uploaded(services, store, storage):
    services.speech = FakeSpeech("streetlight has been off since last week")
    raw = RawSubmission(voice=VoicePayload(data=b"RIFF", filename="note.wav", content_type="audio/wav"))

    result = await service.submit_complaint(services, raw)

    assert result["success"]
    assert storage.uploads[0][0] == "voice-complaints"
    saved = store.complaints[result["complaintId"]]
    assert saved.citizen_voice_url.startswith("https://storage.test/voice-complaints/")


async def test_preview_does_not_store(services, store):
    result = await service.analyze_before_submit(
        services, RawSubmission(text=STREETLIGHT, image_descriptions=["Dark street"])
    )
    assert result["success"]
    assert result["analysis"]["issueType"] == "Streetlight"
    assert result["analysis"]["imageDescriptions"] == ["Dark street"]
    assert store.complaints == {}


async def test_reference_collision_is_retried(services):
    services.store = CollidingStore(collisions=2)

    result = await service.submit_complaint(services, RawSubmission(text=STREETLIGHT))

    assert result["success"]
    attempted = services.store.attempted
    assert len(attempted) == 3
    assert len(set(attempted)) == 3
    assert result["referenceId"] == attempted[-1]


async def test_reference_collisions_exhausted(services):
    services.store = CollidingStore(collisions=3)
    result = await service.submit_complaint(services, RawSubmission(text=STREETLIGHT))
    assert result["error"] == "duplicate_reference"


async def test_workflow_submission_skips_bad_images(services, store, storage):
    good = "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8\xff").decode()
    payload = _workflow_payload(images=[good, "%%% not base64 %%%"])

    result = await service.submit_from_workflow(services, payload)

    assert result["success"]
    assert result["priority"] == "high"
    assert result["severity"] == "High"
    assert result["estimatedResolution"] == "3-5 days"
    assert result["referenceId"].startswith("PW")
    saved = store.complaints[result["complaintId"]]
    assert len(saved.citizen_image_urls) == 1
    assert saved.ai_priority.value == "high"
    assert saved.ai_priority_explanation.startswith("Priority set to Urgent")
    assert saved.location_address == "MG Road"


async def test_workflow_submission_canonicalises_department(services, store):
    edited = ComplaintData(
        type="Pothole",
        description="Large pothole on the main road",
        department="  public works department ",
        priority="LOW",
    )

    result = await service.submit_from_workflow(services, _workflow_payload(complaint_data=edited))

    assert result["department"] == "Public Works Department"
    assert result["priority"] == "low"
    assert result["referenceId"].startswith("PW")
    assert store.complaints[result["complaintId"]].ai_department == "Public Works Department"


async def test_track_status(services, store):
    submitted = await service.submit_complaint(services, RawSubmission(text=STREETLIGHT))
    reference = submitted["referenceId"]
    display = f"{reference[:2].lower()}-{reference[2:].lower()}"

    result = await service.track_status(services, display)

    assert result["success"]
    assert result["referenceId"] == reference
    assert result["status"] == "pending"
    assert result["rejectionReason"] is None


async def test_reference_lookup_hides_private_fields(services):
    owner = AuthUser(id="owner")
    raw = RawSubmission(text=STREETLIGHT, ward="7")
    submitted = await service.submit_complaint(services, raw, owner)

    result = await service.get_by_reference(services, submitted["referenceId"])

    public = result["complaint"]
    assert public["referenceId"] == submitted["referenceId"]
    assert public["ward"] == "7"
    assert public["status"] == "pending"
    for private in ("user_id", "userId", "citizen_text", "citizenText", "citizen_image_urls"):
        assert private not in public


async def test_track_status_errors(services):
    assert (await service.track_status(services, "??"))["error"] == "invalid_input"
    assert (await service.track_status(services, "ED2345AB"))["error"] == "not_found"


async def test_status_lifecycle(services):
    submitted = await service.submit_complaint(services, RawSubmission(text=STREETLIGHT))
    complaint_id = submitted["complaintId"]

    skipped = await service.change_status(services, complaint_id, ComplaintStatus.RESOLVED)
    assert skipped["error"] == "invalid_transition"

    no_reason = await service.change_status(services, complaint_id, ComplaintStatus.REJECTED, " ")
    assert no_reason["error"] == "invalid_transition"

    rejected = await service.change_status(
        services, complaint_id, ComplaintStatus.REJECTED, "Duplicate of ED2345AB"
    )
    assert rejected["success"]
    assert rejected["complaint"]["rejection_reason"] == "Duplicate of ED2345AB"

    reopened = await service.change_status(services, complaint_id, ComplaintStatus.IN_PROGRESS)
    assert not reopened["success"]


async def test_change_status_unknown_complaint(services):
    result = await service.change_status(services, "missing", ComplaintStatus.IN_PROGRESS)
    assert result["error"] == "not_found"


async def test_update_summary_ownership(services, store):
    owner = AuthUser(id="owner")
    submitted = await service.submit_complaint(services, RawSubmission(text=STREETLIGHT), owner)
    complaint_id = submitted["complaintId"]

    other = await service.update_summary(services, complaint_id, "Hijack", AuthUser(id="other"))
    assert other["error"] == "forbidden"

    anonymous = await service.update_summary(services, complaint_id, "Hijack", None)
    assert anonymous["error"] == "forbidden"
    assert store.complaints[complaint_id].ai_summary != "Hijack"

    empty = await service.update_summary(services, complaint_id, "  ", owner)
    assert empty["error"] == "invalid_input"

    officer = AuthUser(id="officer", role="OFFICER")
    assert (await service.update_summary(services, complaint_id, "Fixed wording", officer))["success"]
    assert store.complaints[complaint_id].ai_summary == "Fixed wording"


async def test_update_summary_on_anonymous_complaint(services, store):
    submitted = await service.submit_complaint(services, RawSubmission(text=STREETLIGHT))

    result = await service.update_summary(services, submitted["complaintId"], "Reworded", None)

    assert result["success"]
    assert store.complaints[submitted["complaintId"]].ai_summary == "Reworded"


async def test_list_and_analytics(services):
    user = AuthUser(id="user-1")
    await service.submit_complaint(services, RawSubmission(text=STREETLIGHT), user)
    await service.submit_complaint(services, RawSubmission(text=STREETLIGHT))

    mine = await service.list_complaints(services, ComplaintFilters(user_id="user-1"))
    assert len(mine["complaints"]) == 1

    result = await service.analytics(services)
    assert result["data"]["byDepartment"] == [{"name": "Electricity Department", "value": 2}]
    assert {"name": "Pending", "value": 2} in result["data"]["byStatus"]
    assert {"name": "Resolved", "value": 0} in result["data"]["byStatus"]
