"""Shared fixtures: canned model responses and in-memory collaborators."""

from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from unitydesk.api.app import create_app
from unitydesk.complaints.service import AppServices
from unitydesk.config import Settings
from unitydesk.db.memory import MemoryComplaintStore
from unitydesk.errors import ExternalServiceError
from unitydesk.models import AuthUser
from unitydesk.pipeline.common.schemas import (
    ClassificationResult,
    EdgeValidation,
    ScoringResult,
    SummarizationResult,
    UnderstandingResult,
    ValidationResult,
    VisionAnalysis,
)


STREETLIGHT = "The streetlight near Ward 7 market has been broken for two weeks"


class FakeCompletionClient:
    """Returns canned objects per schema; an Exception value is raised instead."""

    def __init__(self) -> None:
        self.structured: dict[type, Any] = {}
        self.image_replies: list[Any] = []
        self.calls: list[tuple[str, str]] = []

    async def generate_structured(self, system_prompt, user_prompt, schema, schema_hint):
        self.calls.append(("structured", schema.__name__))
        value = self.structured.get(schema)
        if value is None:
            raise ExternalServiceError(f"no canned response for {schema.__name__}")
        if isinstance(value, Exception):
            raise value
        return value

    async def generate_text(self, system_prompt, user_prompt, temperature=0.3):
        self.calls.append(("text", user_prompt))
        return "ok"

    async def describe_image(self, image_b64, prompt, high_detail=False):
        self.calls.append(("image", image_b64))
        if not self.image_replies:
            raise ExternalServiceError("no canned image reply")
        value = self.image_replies.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class FakeSpeech:
    def __init__(self, transcript: str = "", error: Optional[Exception] = None) -> None:
        self.transcript = transcript
        self.error = error
        self.calls = 0

    async def transcribe(self, audio, content_type=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.transcript


class FakeStorage:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.uploads: list[tuple[str, str, int]] = []

    async def upload(self, bucket, name, data, content_type=None):
        if self.fail:
            raise ExternalServiceError("Failed to upload file: bucket unavailable")
        self.uploads.append((bucket, name, len(data)))
        return f"https://storage.test/{bucket}/{name}"


class FakeAuth:
    def __init__(self) -> None:
        self.tokens: dict[str, AuthUser] = {}

    async def get_user(self, token):
        return self.tokens.get(token)


def vision_analysis(**overrides: Any) -> VisionAnalysis:
    data = {
        "type_of_complaint": "Pothole",
        "brief_description": "Large pothole on the main road",
        "govt_dept_of_concern": "Public Works Department",
        "severity": "High",
        "confidence_score": 0.8,
        "suggested_priority": "Urgent",
        "estimated_resolution_time": "3-5 days",
        "keywords": ["pothole", "road"],
        "detected_objects": ["road"],
    }
    data.update(overrides)
    return VisionAnalysis(**data)


def accept_all(llm: FakeCompletionClient) -> FakeCompletionClient:
    """Canned responses for a valid streetlight complaint through every stage."""
    llm.structured.update(
        {
            ValidationResult: ValidationResult(is_valid=True),
            UnderstandingResult: UnderstandingResult(
                extracted_issue="Broken streetlight near Ward 7 market",
                context="Broken for two weeks",
            ),
            ClassificationResult: ClassificationResult(
                department="Electricity Department", issue_type="Streetlight", confidence=0.9
            ),
            ScoringResult: ScoringResult(
                priority="medium", severity=5, urgency=6, explanation="Safety risk at night"
            ),
            SummarizationResult: SummarizationResult(
                citizen_summary="Streetlight near Ward 7 market is broken.",
                keywords=["streetlight", "ward 7"],
            ),
            VisionAnalysis: vision_analysis(),
            EdgeValidation: EdgeValidation(is_valid=True, message="Looks like a civic issue"),
        }
    )
    return llm


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        azure_openai_endpoint="https://example.openai.azure.com",
        azure_openai_api_key="test-key",
        azure_openai_deployment="gpt-4o",
        app_url="https://unitydesk.test",
    )


@pytest.fixture
def llm() -> FakeCompletionClient:
    return accept_all(FakeCompletionClient())


@pytest.fixture
def store() -> MemoryComplaintStore:
    return MemoryComplaintStore()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def services(settings, llm, store, storage, auth) -> AppServices:
    return AppServices(settings=settings, llm=llm, store=store, storage=storage, auth=auth)


@pytest.fixture
def client(services) -> TestClient:
    return TestClient(create_app(services))
