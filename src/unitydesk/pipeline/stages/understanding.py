"""Understanding stage: issue, context, intent and language."""

from __future__ import annotations

from unitydesk.models import NormalizedInput
from unitydesk.pipeline.common.context import input_context
from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import UnderstandingResult
from unitydesk.pipeline.llm.azure_openai import CompletionClient
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

SCHEMA_HINT = """{
  "extractedIssue": string,
  "context": string,
  "intent": string,
  "language": "english" | "hindi" | "mixed"
}"""


def fallback_understanding(normalized: NormalizedInput) -> UnderstandingResult:
    """Degraded result synthesized from the raw input."""
    return UnderstandingResult(
        extracted_issue=normalized.text_content,
        context="",
        intent="complaint",
        language="english",
    )


async def understand_complaint(
    llm: CompletionClient,
    normalized: NormalizedInput,
    prompt_version: str = "v001",
) -> UnderstandingResult:
    user_prompt = (
        f"Extract the issue from this complaint:\n\n{input_context(normalized)}\n\n"
        "Provide a clear extracted issue, context, citizen's intent, and detected language."
    )
    try:
        return await llm.generate_structured(
            load_prompt("understanding", prompt_version),
            user_prompt,
            UnderstandingResult,
            SCHEMA_HINT,
        )
    except Exception:
        logger.exception("pipeline.understanding.failed; using raw input")
        return fallback_understanding(normalized)
