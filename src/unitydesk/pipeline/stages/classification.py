"""Classification stage: responsible department and issue type."""

from __future__ import annotations

from unitydesk.models import NormalizedInput
from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import ClassificationResult
from unitydesk.pipeline.llm.azure_openai import CompletionClient


SCHEMA_HINT = """{
  "department": string,
  "issueType": string,
  "subCategory": string | null,
  "confidence": number
}"""


async def classify_complaint(
    llm: CompletionClient,
    normalized: NormalizedInput,
    extracted_issue: str,
    prompt_version: str = "v001",
) -> ClassificationResult:
    """Map the understood issue onto a department. Errors propagate."""
    descriptions = ", ".join(normalized.image_descriptions)
    context = "\n".join(
        [
            f"Extracted Issue: {extracted_issue}",
            f"Text: {normalized.text_content or 'None'}",
            f"Image Descriptions: {descriptions or 'None'}",
            f"Location: {normalized.location_hint() or 'Not provided'}",
        ]
    )
    return await llm.generate_structured(
        load_prompt("classification", prompt_version),
        f"Classify this complaint to the correct department:\n\n{context}\n\n"
        "Provide department, issue type, optional sub-category, and confidence (0-1).",
        ClassificationResult,
        SCHEMA_HINT,
    )
