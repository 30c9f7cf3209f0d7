"""Structured analysis of a typed or transcribed complaint."""

from __future__ import annotations

from unitydesk.errors import InputError
from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import VisionAnalysis
from unitydesk.pipeline.llm.azure_openai import CompletionClient


SCHEMA_HINT = """{
  "type_of_complaint": "Road Damage|Water Issue|Garbage|Electricity|Other",
  "brief_description": "A concise summary of the issue based on the text",
  "govt_dept_of_concern": "Municipal Corporation|Public Works Department|Water Resources|Electricity Department|Police Department|Health Department|Transport Department|Urban Development|Forest Department|District Administration",
  "severity": "Low|Medium|High|Critical",
  "confidence_score": 0-1,
  "suggested_priority": "Immediate|Urgent|Standard|Low",
  "estimated_resolution_time": "1-2 days|3-5 days|1-2 weeks|2-4 weeks",
  "keywords": ["key1", "key2", "key3"],
  "detected_objects": ["items mentioned in text"]
}"""

TOO_SHORT_MESSAGE = (
    "Description is too short for meaningful analysis. Please provide more details."
)


def check_text_length(text: str, min_chars: int = 10) -> str:
    """Return the stripped text or raise InputError when it is too short."""
    cleaned = (text or "").strip()
    if len(cleaned) < min_chars:
        raise InputError(TOO_SHORT_MESSAGE)
    return cleaned


async def analyze_text_complaint(
    llm: CompletionClient,
    text: str,
    min_chars: int = 10,
    prompt_version: str = "v001",
) -> VisionAnalysis:
    """Same shape as photo analysis so both workflow variants share later steps."""
    cleaned = check_text_length(text, min_chars)
    return await llm.generate_structured(
        load_prompt("text_analysis", prompt_version),
        f'Analyze this complaint text: "{cleaned}"',
        VisionAnalysis,
        SCHEMA_HINT,
    )
