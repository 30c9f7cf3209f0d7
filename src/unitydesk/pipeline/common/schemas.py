"""LLM output schemas and normalization helpers."""

from __future__ import annotations

import math
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from unitydesk.models import DEPARTMENTS, GENERAL_DEPARTMENT, CamelModel, Severity


def clamp(value: float, low: float, high: float) -> float:
    if value < low:
        return low
    if value > high:
        return high
    return value


def canonical_department(value: str) -> str:
    """Map a model-supplied department onto the fixed department list."""
    cleaned = (value or "").strip().lower()
    for department in DEPARTMENTS:
        if department.lower() == cleaned:
            return department
    return GENERAL_DEPARTMENT


class ValidationResult(CamelModel):
    """Validation stage output."""

    is_valid: bool
    is_government_issue: bool = True
    is_understandable: bool = True
    is_spam: bool = False
    needs_clarification: bool = False
    clarification_questions: Optional[list[str]] = None
    validation_message: Optional[str] = None


class UnderstandingResult(CamelModel):
    """Understanding stage output."""

    extracted_issue: str
    context: str = ""
    intent: str = "complaint"
    language: Literal["english", "hindi", "mixed"] = "english"

    @field_validator("language", mode="before")
    @classmethod
    def _lower_language(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ClassificationResult(CamelModel):
    """Classification stage output."""

    department: str
    issue_type: str
    sub_category: Optional[str] = None
    confidence: float = 0.0

    @field_validator("department")
    @classmethod
    def _canonical_department(cls, value: str) -> str:
        return canonical_department(value)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return clamp(value, 0.0, 1.0)


class ScoringResult(CamelModel):
    """Scoring stage output."""

    priority: Literal["high", "medium", "low"]
    severity: int
    urgency: int
    explanation: str = ""

    @field_validator("priority", mode="before")
    @classmethod
    def _lower_priority(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("severity", "urgency", mode="before")
    @classmethod
    def _clamp_scale(cls, value: object) -> object:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return value
        if isinstance(value, (int, float)) and math.isfinite(value):
            return int(clamp(round(value), 1, 10))
        return value


class SummarizationResult(CamelModel):
    """Summarization stage output."""

    citizen_summary: str
    keywords: list[str] = Field(default_factory=list)
    internal_notes: Optional[str] = None

    @field_validator("keywords")
    @classmethod
    def _clean_keywords(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item and item.strip()]


class RejectedResult(CamelModel):
    """Pipeline stopped at validation."""

    kind: Literal["rejected"] = "rejected"
    validation: ValidationResult


class AcceptedResult(CamelModel):
    """Every stage ran."""

    kind: Literal["accepted"] = "accepted"
    validation: ValidationResult
    understanding: UnderstandingResult
    classification: ClassificationResult
    scoring: ScoringResult
    summarization: SummarizationResult


PipelineResult = Annotated[Union[RejectedResult, AcceptedResult], Field(discriminator="kind")]


VALID_SEVERITIES: tuple[str, ...] = ("Low", "Medium", "High", "Critical")


class VisionAnalysis(BaseModel):
    """Structured analysis of a complaint photo (or text, in the same shape)."""

    type_of_complaint: str
    brief_description: str
    govt_dept_of_concern: str
    severity: Severity = "Medium"
    confidence_score: float = 0.0
    suggested_priority: str = "Standard"
    estimated_resolution_time: str = "5-7 days"
    keywords: list[str] = Field(default_factory=list)
    detected_objects: list[str] = Field(default_factory=list)

    @field_validator("type_of_complaint", "brief_description", "govt_dept_of_concern")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("required field is empty")
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _default_severity(cls, value: object) -> object:
        if isinstance(value, str):
            titled = value.strip().title()
            if titled in VALID_SEVERITIES:
                return titled
        return "Medium"

    @field_validator("confidence_score")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return clamp(value, 0.0, 1.0)


class EdgeValidation(CamelModel):
    """Quick "is this a civic-issue photo" verdict."""

    is_valid: bool = True
    message: str = "Image validated"

    @field_validator("is_valid", mode="before")
    @classmethod
    def _default_true(cls, value: object) -> object:
        # Anything but an explicit false counts as valid.
        return value is not False

    @field_validator("message", mode="before")
    @classmethod
    def _default_message(cls, value: object) -> object:
        return value or "Image validated"


class PolicyRecommendation(BaseModel):
    id: str
    title: str
    insight: str
    recommendation: str
    impact: Literal["high", "medium"] = "medium"
    department: str


class PolicyRecommendations(BaseModel):
    recommendations: list[PolicyRecommendation] = Field(default_factory=list)
