"""Photo analysis, multi-photo merging and edge validation."""

from __future__ import annotations

from typing import Sequence

from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import EdgeValidation, VisionAnalysis
from unitydesk.pipeline.llm.azure_openai import CompletionClient, parse_structured
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

SEVERITY_ORDER: dict[str, int] = {"Low": 1, "Medium": 2, "High": 3, "Critical": 4}

DESCRIBE_PROMPT = (
    "Describe this civic issue image in detail. Focus on what the problem is, "
    "its location if visible, and severity."
)


def fallback_analysis() -> VisionAnalysis:
    """Minimal analysis the citizen can complete by hand."""
    return VisionAnalysis(
        type_of_complaint="General Civic Issue",
        brief_description="Unable to analyze image automatically. Please provide details manually.",
        govt_dept_of_concern="Municipal Corporation",
        severity="Medium",
        confidence_score=0.0,
        suggested_priority="Standard",
        estimated_resolution_time="5-7 days",
    )


async def describe_image(llm: CompletionClient, image_b64: str) -> str:
    """Free-text description used by input normalization."""
    return await llm.describe_image(image_b64, DESCRIBE_PROMPT)


async def analyze_complaint_image(
    llm: CompletionClient, image_b64: str, prompt_version: str = "v001"
) -> VisionAnalysis:
    """Structured analysis of one photo; falls back to a blank analysis on failure."""
    try:
        raw = await llm.describe_image(image_b64, load_prompt("vision", prompt_version))
        return parse_structured(raw, VisionAnalysis)
    except Exception:
        logger.exception("vision.analysis.failed")
        return fallback_analysis()


async def analyze_images(
    llm: CompletionClient, images_b64: Sequence[str], prompt_version: str = "v001"
) -> list[VisionAnalysis]:
    analyses: list[VisionAnalysis] = []
    for image_b64 in images_b64:
        analyses.append(await analyze_complaint_image(llm, image_b64, prompt_version))
    return analyses


def _unique(items: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def highest_severity(severities: Sequence[str]) -> str:
    highest = "Low"
    highest_value = 0
    for severity in severities:
        value = SEVERITY_ORDER.get(severity, 0)
        if value > highest_value:
            highest, highest_value = severity, value
    return highest


def merge_analyses(analyses: Sequence[VisionAnalysis]) -> VisionAnalysis:
    """Combine per-photo analyses into one complaint-level analysis."""
    if not analyses:
        raise ValueError("No analyses to merge")
    if len(analyses) == 1:
        return analyses[0]

    first = analyses[0]
    return VisionAnalysis(
        type_of_complaint=first.type_of_complaint,
        brief_description=" | ".join(a.brief_description for a in analyses),
        govt_dept_of_concern=first.govt_dept_of_concern,
        severity=highest_severity([a.severity for a in analyses]),
        confidence_score=max(a.confidence_score for a in analyses),
        suggested_priority=first.suggested_priority,
        estimated_resolution_time=first.estimated_resolution_time,
        keywords=_unique([k for a in analyses for k in a.keywords]),
        detected_objects=_unique([o for a in analyses for o in a.detected_objects]),
    )


async def validate_civic_image(
    llm: CompletionClient, image_b64: str, prompt_version: str = "v001"
) -> EdgeValidation:
    """Fast plausibility check before full analysis. Fails open."""
    try:
        raw = await llm.describe_image(image_b64, load_prompt("edge_validation", prompt_version))
        return parse_structured(raw, EdgeValidation)
    except Exception:
        logger.exception("vision.edge_validation.failed")
        return EdgeValidation(
            is_valid=True,
            message="Unable to validate automatically. Proceeding with submission.",
        )
