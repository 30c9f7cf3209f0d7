"""Officer-facing policy recommendations drawn from recent complaints."""

from __future__ import annotations

from typing import Any, Sequence

import orjson

from unitydesk.pipeline.common.prompt_loader import load_prompt
from unitydesk.pipeline.common.schemas import PolicyRecommendation, PolicyRecommendations
from unitydesk.pipeline.llm.azure_openai import CompletionClient
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

SCHEMA_HINT = """{
  "recommendations": [
    {
      "id": "string",
      "title": "string",
      "insight": "string",
      "recommendation": "string",
      "impact": "high | medium",
      "department": "string"
    }
  ]
}"""

MAX_COMPLAINTS = 20


async def generate_policy_recommendations(
    llm: CompletionClient,
    recent_complaints: Sequence[dict[str, Any]],
    prompt_version: str = "v001",
) -> list[PolicyRecommendation]:
    """Best-effort; an empty list when the model cannot be reached."""
    data = orjson.dumps(
        list(recent_complaints[:MAX_COMPLAINTS]), option=orjson.OPT_INDENT_2, default=str
    ).decode("utf-8")
    try:
        result = await llm.generate_structured(
            load_prompt("policy", prompt_version),
            f"Analysis Data (Recent Complaints):\n{data}",
            PolicyRecommendations,
            SCHEMA_HINT,
        )
    except Exception:
        logger.exception("intelligence.policy.failed")
        return []
    return result.recommendations
