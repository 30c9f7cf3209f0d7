"""Validation stage: is this a legitimate, comprehensible civic grievance?"""

from __future__ import annotations

from unitydesk.models import NormalizedInput
from unitydesk.pipeline.common.context import input_context
from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import ValidationResult
from unitydesk.pipeline.llm.azure_openai import CompletionClient
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

SCHEMA_HINT = """{
  "isValid": boolean,
  "isGovernmentIssue": boolean,
  "isUnderstandable": boolean,
  "isSpam": boolean,
  "needsClarification": boolean,
  "clarificationQuestions": string[] | null,
  "validationMessage": string | null
}"""

AUTO_VALIDATED_MESSAGE = "Auto-validated (AI service unavailable)"


def auto_validated() -> ValidationResult:
    """Fail-open verdict used when the validator cannot be reached."""
    return ValidationResult(
        is_valid=True,
        is_government_issue=True,
        is_understandable=True,
        is_spam=False,
        needs_clarification=False,
        validation_message=AUTO_VALIDATED_MESSAGE,
    )


async def validate_complaint(
    llm: CompletionClient,
    normalized: NormalizedInput,
    prompt_version: str = "v001",
) -> ValidationResult:
    """Run the validator once; any failure counts as valid."""
    user_prompt = (
        f"Validate this complaint:\n\n{input_context(normalized)}\n\n"
        "Consider:\n- Is this a civic/government issue?\n- Is it understandable?\n"
        "- Is it spam/abusive?\n- Does it need clarification?"
    )
    try:
        return await llm.generate_structured(
            load_prompt("validation", prompt_version),
            user_prompt,
            ValidationResult,
            SCHEMA_HINT,
        )
    except Exception:
        logger.exception("pipeline.validation.failed")
        return auto_validated()
