"""Summarization stage: citizen summary and search keywords."""

from __future__ import annotations

from typing import Optional

from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import SummarizationResult
from unitydesk.pipeline.llm.azure_openai import CompletionClient


SCHEMA_HINT = """{
  "citizenSummary": string,
  "keywords": string[],
  "internalNotes": string | null
}"""


async def summarize_complaint(
    llm: CompletionClient,
    extracted_issue: str,
    context: str,
    location: Optional[str] = None,
    prompt_version: str = "v001",
) -> SummarizationResult:
    full_context = (
        f"Issue: {extracted_issue}\nContext: {context}\nLocation: {location or 'Not specified'}"
    )
    return await llm.generate_structured(
        load_prompt("summarization", prompt_version),
        "Create a citizen-friendly summary (2-3 sentences) for this complaint:\n\n"
        f"{full_context}\n\nAlso provide 3-5 keywords for searchability.",
        SummarizationResult,
        SCHEMA_HINT,
    )
