"""Scoring stage: priority tier, severity and urgency."""

from __future__ import annotations

from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import ScoringResult
from unitydesk.pipeline.llm.azure_openai import CompletionClient


SCHEMA_HINT = """{
  "priority": "high" | "medium" | "low",
  "severity": number,
  "urgency": number,
  "explanation": string
}"""


async def score_complaint(
    llm: CompletionClient,
    extracted_issue: str,
    issue_type: str,
    department: str,
    prompt_version: str = "v001",
) -> ScoringResult:
    context = f"Issue: {extracted_issue}\nType: {issue_type}\nDepartment: {department}"
    return await llm.generate_structured(
        load_prompt("scoring", prompt_version),
        f"Score the priority of this complaint:\n\n{context}\n\n"
        "Provide priority, severity (1-10), urgency (1-10), and citizen-friendly explanation.",
        ScoringResult,
        SCHEMA_HINT,
    )
