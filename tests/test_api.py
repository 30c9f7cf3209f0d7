import base64

from conftest import STREETLIGHT
from unitydesk.models import AuthUser, ComplaintStatus
from unitydesk.pipeline.common.schemas import ValidationResult


JPEG = base64.b64encode(b"\xff\xd8\xff\xe0").decode()


def _submit(client, **fields):
    data = {"text": STREETLIGHT}
    data.update(fields)
    return client.post("/api/complaints", data=data)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_complaint_rejects_bad_input(client):
    assert client.post("/api/analyze-complaint", json={}).status_code == 400
    assert client.post("/api/analyze-complaint", json={"images": []}).status_code == 400
    assert client.post("/api/analyze-complaint", json={"images": [1, 2]}).status_code == 400
    too_many = client.post("/api/analyze-complaint", json={"images": [JPEG] * 6})
    assert too_many.status_code == 400
    assert too_many.json()["error"] == "invalid_input"


def test_analyze_complaint_falls_back_per_photo(client):
    response = client.post("/api/analyze-complaint", json={"images": [JPEG, JPEG]})
    body = response.json()
    assert response.status_code == 200
    assert body["imageCount"] == 2
    assert len(body["individualAnalyses"]) == 2
    assert body["analysis"]["type_of_complaint"] == "General Civic Issue"


def test_analyze_text(client):
    short = client.post("/api/analyze-text", json={"text": "pothole"})
    assert short.status_code == 400

    response = client.post("/api/analyze-text", json={"text": STREETLIGHT})
    assert response.status_code == 200
    assert response.json()["analysis"]["govt_dept_of_concern"] == "Public Works Department"


def test_generate_report(client):
    response = client.post(
        "/api/generate-report",
        json={
            "referenceId": "ED7K2M9X",
            "summary": "Streetlight is broken",
            "department": "Electricity Department",
            "priority": "medium",
        },
    )
    body = response.json()
    assert response.status_code == 200
    assert body["fileName"] == "grievance-ED7K2M9X.pdf"
    assert body["pdf"].startswith("data:application/pdf;base64,")

    missing = client.post("/api/generate-report", json={"referenceId": "ED7K2M9X"})
    assert missing.status_code == 400
    assert "summary" in missing.json()["message"]


def test_submit_form_and_track(client, store):
    response = _submit(client, locationLat="28.61", locationLng="77.2", ward="7")
    body = response.json()
    assert response.status_code == 200
    assert body["success"]
    assert body["department"] == "Electricity Department"

    status = client.get("/api/status", params={"ref": body["referenceId"]})
    assert status.status_code == 200
    assert status.json()["status"] == "pending"

    lookup = client.get(f"/api/complaints/reference/{body['referenceId']}")
    assert lookup.json()["complaint"]["ward"] == "7"
    assert "user_id" not in lookup.json()["complaint"]
    assert "citizen_text" not in lookup.json()["complaint"]


def test_submit_form_with_photo(client, storage, llm):
    llm.image_replies = ["A broken streetlight pole"]
    response = client.post(
        "/api/complaints",
        data={"text": STREETLIGHT},
        files={"image-0": ("pole.jpg", b"\xff\xd8\xff", "image/jpeg")},
    )
    assert response.status_code == 200
    assert storage.uploads[0][0] == "image-complaints"


def test_submit_form_rejects_unsupported_upload(client, store):
    response = client.post(
        "/api/complaints",
        data={"text": STREETLIGHT},
        files={"images": ("notes.pdf", b"%PDF", "application/pdf")},
    )
    assert response.status_code == 400
    assert store.complaints == {}


def test_rejected_complaint_is_422(client, llm):
    llm.structured[ValidationResult] = ValidationResult(
        is_valid=False, validation_message="Not a civic issue"
    )
    response = _submit(client)
    assert response.status_code == 422
    assert response.json()["error"] == "rejected"


def test_preview(client, store):
    response = client.post("/api/complaints/preview", data={"text": STREETLIGHT})
    assert response.status_code == 200
    assert response.json()["analysis"]["department"] == "Electricity Department"
    assert store.complaints == {}


def test_workflow_submission(client):
    response = client.post(
        "/api/complaints/workflow",
        json={
            "images": [],
            "complaintData": {
                "type": "Pothole",
                "description": "Large pothole near the bus stop",
                "department": "Public Works Department",
                "severity": "High",
                "priority": "Immediate",
            },
            "aiAnalysis": {
                "type_of_complaint": "Pothole",
                "brief_description": "Large pothole",
                "govt_dept_of_concern": "Public Works Department",
            },
        },
    )
    body = response.json()
    assert response.status_code == 200
    assert body["referenceId"].startswith("PW")
    assert body["estimatedResolution"] == "5-7 days"


def test_status_errors(client):
    assert client.get("/api/status", params={"ref": "bad"}).status_code == 400
    assert client.get("/api/status", params={"ref": "PW2345AB"}).status_code == 404
    assert client.get("/api/status").status_code == 400


def test_my_complaints_requires_sign_in(client, auth):
    assert client.get("/api/my-complaints").status_code == 401

    auth.tokens["citizen"] = AuthUser(id="user-1")
    _submit(client, isAnonymous="false")
    client.post(
        "/api/complaints", data={"text": STREETLIGHT}, headers={"Authorization": "Bearer citizen"}
    )
    response = client.get("/api/my-complaints", headers={"Authorization": "Bearer citizen"})
    assert response.status_code == 200
    assert len(response.json()["complaints"]) == 1


def test_officer_routes_require_role(client, auth):
    auth.tokens["citizen"] = AuthUser(id="user-1")
    auth.tokens["officer"] = AuthUser(id="officer-1", role="OFFICER")

    assert client.get("/api/officer/complaints").status_code == 401
    citizen = client.get("/api/officer/complaints", headers={"Authorization": "Bearer citizen"})
    assert citizen.status_code == 403
    officer = client.get("/api/officer/analytics", headers={"Authorization": "Bearer officer"})
    assert officer.status_code == 200


def test_officer_status_change(client, auth, store):
    auth.tokens["officer"] = AuthUser(id="officer-1", role="ADMIN")
    headers = {"Authorization": "Bearer officer"}
    complaint_id = _submit(client).json()["complaintId"]
    url = f"/api/officer/complaints/{complaint_id}/status"

    skipped = client.patch(url, json={"status": "resolved"}, headers=headers)
    assert skipped.status_code == 409

    no_reason = client.patch(url, json={"status": "rejected"}, headers=headers)
    assert no_reason.status_code == 409

    moved = client.patch(url, json={"status": "in_progress"}, headers=headers)
    assert moved.status_code == 200
    assert store.complaints[complaint_id].status is ComplaintStatus.IN_PROGRESS

    missing = client.patch(
        "/api/officer/complaints/nope/status", json={"status": "in_progress"}, headers=headers
    )
    assert missing.status_code == 404

    listed = client.get(
        "/api/officer/complaints", params={"status": "in_progress"}, headers=headers
    )
    assert [c["id"] for c in listed.json()["complaints"]] == [complaint_id]


def test_update_summary_endpoint(client, store):
    complaint_id = _submit(client).json()["complaintId"]
    response = client.patch(
        f"/api/complaints/{complaint_id}/summary", json={"summary": "Clearer summary"}
    )
    assert response.status_code == 200
    assert store.complaints[complaint_id].ai_summary == "Clearer summary"
    empty = client.patch(f"/api/complaints/{complaint_id}/summary", json={"summary": " "})
    assert empty.status_code == 400


def test_update_summary_of_owned_complaint_needs_owner(client, auth, store):
    auth.tokens["citizen"] = AuthUser(id="user-1")
    auth.tokens["stranger"] = AuthUser(id="user-2")
    owner_headers = {"Authorization": "Bearer citizen"}
    complaint_id = client.post(
        "/api/complaints", data={"text": STREETLIGHT}, headers=owner_headers
    ).json()["complaintId"]
    url = f"/api/complaints/{complaint_id}/summary"

    anonymous = client.patch(url, json={"summary": "Hijacked"})
    assert anonymous.status_code == 403
    assert anonymous.json()["error"] == "forbidden"
    stranger = client.patch(
        url, json={"summary": "Hijacked"}, headers={"Authorization": "Bearer stranger"}
    )
    assert stranger.status_code == 403
    assert store.complaints[complaint_id].ai_summary != "Hijacked"

    owner = client.patch(url, json={"summary": "My wording"}, headers=owner_headers)
    assert owner.status_code == 200
    assert store.complaints[complaint_id].ai_summary == "My wording"
