"""Sequential five-stage AI pipeline."""

from __future__ import annotations

from unitydesk.models import NormalizedInput
from unitydesk.pipeline.common.schemas import AcceptedResult, PipelineResult, RejectedResult
from unitydesk.pipeline.llm.azure_openai import CompletionClient
from unitydesk.pipeline.stages.classification import classify_complaint
from unitydesk.pipeline.stages.scoring import score_complaint
from unitydesk.pipeline.stages.summarization import summarize_complaint
from unitydesk.pipeline.stages.understanding import understand_complaint
from unitydesk.pipeline.stages.validation import validate_complaint
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)


async def process_complaint(
    llm: CompletionClient,
    normalized: NormalizedInput,
    prompt_version: str = "v001",
) -> PipelineResult:
    """Run validation, then understanding, classification, scoring and summarization.

    Each stage consumes the previous stage's output, so the calls are strictly
    sequential. An invalid submission stops after validation. Understanding
    degrades to the raw text on failure; the later stages raise.
    """
    validation = await validate_complaint(llm, normalized, prompt_version)
    if not validation.is_valid:
        logger.info("pipeline.rejected message=%s", validation.validation_message)
        return RejectedResult(validation=validation)

    understanding = await understand_complaint(llm, normalized, prompt_version)
    classification = await classify_complaint(
        llm, normalized, understanding.extracted_issue, prompt_version
    )
    scoring = await score_complaint(
        llm,
        understanding.extracted_issue,
        classification.issue_type,
        classification.department,
        prompt_version,
    )
    summarization = await summarize_complaint(
        llm,
        understanding.extracted_issue,
        understanding.context,
        normalized.location_hint(),
        prompt_version,
    )

    logger.info(
        "pipeline.accepted department=%s priority=%s",
        classification.department,
        scoring.priority,
    )
    return AcceptedResult(
        validation=validation,
        understanding=understanding,
        classification=classification,
        scoring=scoring,
        summarization=summarization,
    )
