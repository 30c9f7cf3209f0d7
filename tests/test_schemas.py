import pytest
from pydantic import TypeAdapter, ValidationError

from unitydesk.models import GENERAL_DEPARTMENT
from unitydesk.pipeline.common.schemas import (
    AcceptedResult,
    ClassificationResult,
    EdgeValidation,
    PipelineResult,
    RejectedResult,
    ScoringResult,
    SummarizationResult,
    UnderstandingResult,
    ValidationResult,
    VisionAnalysis,
)


def test_classification_canonicalises_department_and_clamps_confidence():
    out = ClassificationResult(department="public works department", issue_type="Road", confidence=1.7)
    assert out.department == "Public Works Department"
    assert out.confidence == 1.0

    unknown = ClassificationResult(department="Ministry of Fun", issue_type="x", confidence=-1)
    assert unknown.department == GENERAL_DEPARTMENT
    assert unknown.confidence == 0.0


def test_scoring_clamps_scales_and_lowercases_priority():
    out = ScoringResult.model_validate(
        {"priority": "HIGH", "severity": 14, "urgency": 0, "explanation": "x"}
    )
    assert out.priority == "high"
    assert out.severity == 10
    assert out.urgency == 1

    # Models sometimes quote numbers; those still get clamped.
    quoted = ScoringResult.model_validate({"priority": "low", "severity": "15", "urgency": " 0 "})
    assert quoted.severity == 10
    assert quoted.urgency == 1
    assert ScoringResult.model_validate({"priority": "low", "severity": "6.6", "urgency": "3"}).severity == 7

    with pytest.raises(ValidationError):
        ScoringResult.model_validate({"priority": "low", "severity": "very", "urgency": 5})
    with pytest.raises(ValidationError):
        ScoringResult.model_validate({"priority": "critical", "severity": 5, "urgency": 5})


def test_stage_models_accept_camel_case():
    validation = ValidationResult.model_validate(
        {"isValid": False, "isSpam": True, "validationMessage": "Spam"}
    )
    assert validation.is_valid is False
    assert validation.is_spam is True

    understanding = UnderstandingResult.model_validate(
        {"extractedIssue": "Leak", "language": "Hindi"}
    )
    assert understanding.language == "hindi"


def test_summarization_drops_blank_keywords():
    out = SummarizationResult(citizen_summary="s", keywords=[" road ", "", "  "])
    assert out.keywords == ["road"]


def test_pipeline_result_discriminates_on_kind():
    adapter = TypeAdapter(PipelineResult)
    rejected = adapter.validate_python({"kind": "rejected", "validation": {"isValid": False}})
    assert isinstance(rejected, RejectedResult)

    with pytest.raises(ValidationError):
        # An accepted result cannot be partially populated.
        adapter.validate_python({"kind": "accepted", "validation": {"isValid": True}})


def test_accepted_result_serialises_with_kind():
    result = AcceptedResult(
        validation=ValidationResult(is_valid=True),
        understanding=UnderstandingResult(extracted_issue="x"),
        classification=ClassificationResult(department="Health Department", issue_type="y"),
        scoring=ScoringResult(priority="low", severity=2, urgency=2),
        summarization=SummarizationResult(citizen_summary="z"),
    )
    dumped = result.model_dump(by_alias=True)
    assert dumped["kind"] == "accepted"
    assert dumped["summarization"]["citizenSummary"] == "z"


def test_vision_analysis_defaults_unknown_severity():
    out = VisionAnalysis(
        type_of_complaint="Garbage",
        brief_description="Overflowing bin",
        govt_dept_of_concern="Municipal Corporation",
        severity="extreme",
        confidence_score=3,
    )
    assert out.severity == "Medium"
    assert out.confidence_score == 1.0

    assert VisionAnalysis(
        type_of_complaint="a", brief_description="b", govt_dept_of_concern="c", severity="critical"
    ).severity == "Critical"


def test_vision_analysis_requires_core_fields():
    with pytest.raises(ValidationError):
        VisionAnalysis(type_of_complaint="", brief_description="b", govt_dept_of_concern="c")


def test_edge_validation_only_explicit_false_rejects():
    assert EdgeValidation.model_validate({}).is_valid is True
    assert EdgeValidation.model_validate({"isValid": None}).is_valid is True
    assert EdgeValidation.model_validate({"isValid": False}).is_valid is False
    assert EdgeValidation.model_validate({"message": ""}).message == "Image validated"
