"""Azure OpenAI REST client for structured JSON, free text and image descriptions."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, TypeVar

import httpx
import orjson
from pydantic import BaseModel, ValidationError

from unitydesk.config import Settings
from unitydesk.errors import ConfigurationError, ExternalServiceError, StructuredOutputError
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


JSON_ONLY_SUFFIX = (
    "\n\nYou must respond with valid JSON only, without any markdown formatting or code blocks."
)


class CompletionClient(Protocol):
    """What the pipeline needs from a hosted model."""

    async def generate_structured(
        self, system_prompt: str, user_prompt: str, schema: type[T], schema_hint: str
    ) -> T: ...

    async def generate_text(
        self, system_prompt: str, user_prompt: str, temperature: float = 0.3
    ) -> str: ...

    async def describe_image(
        self, image_b64: str, prompt: str, high_detail: bool = False
    ) -> str: ...


def _extract_text_from_response(payload: dict[str, Any]) -> str:
    choices = payload.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content")
    return content.strip() if isinstance(content, str) else ""


def _strip_code_fences(text: str) -> str:
    value = text.strip()
    if value.startswith("```"):
        lines = value.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].startswith("```"):
            lines = lines[:-1]
        value = "\n".join(lines).strip()
    return value


def _fix_undefined(text: str) -> str:
    """Models occasionally emit JavaScript ``undefined``; JSON wants ``null``."""
    return re.sub(r":\s*undefined\b", ": null", text)


def _extract_json_string(text: str) -> str:
    candidate = _fix_undefined(_strip_code_fences(text))
    try:
        orjson.loads(candidate)
        return candidate
    except orjson.JSONDecodeError:
        pass

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start >= 0 and end > start:
        maybe = candidate[start : end + 1].strip()
        orjson.loads(maybe)
        return maybe

    raise ValueError("Could not extract valid JSON from model output")


def parse_structured(text: str, schema: type[T]) -> T:
    """Parse raw model text into ``schema`` or raise StructuredOutputError."""
    try:
        return schema.model_validate_json(_extract_json_string(text))
    except (ValidationError, ValueError) as exc:
        raise StructuredOutputError(f"Failed to generate structured AI response: {exc}") from exc


@dataclass(frozen=True)
class ChatResult:
    text: str
    latency_ms: int


class AzureOpenAIClient:
    """Minimal REST client for Azure OpenAI chat completions."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        missing = self.settings.missing_ai_settings()
        if missing:
            raise ConfigurationError(
                "Azure OpenAI configuration incomplete, missing: " + ", ".join(missing)
            )
        self._transport = transport

    @property
    def url(self) -> str:
        endpoint = (self.settings.azure_openai_endpoint or "").rstrip("/")
        return (
            f"{endpoint}/openai/deployments/{self.settings.azure_openai_deployment}"
            "/chat/completions"
        )

    async def _chat(
        self,
        messages: list[dict[str, Any]],
        temperature: float,
        max_tokens: int,
    ) -> ChatResult:
        body: dict[str, Any] = {
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        params = {"api-version": self.settings.azure_openai_api_version}
        headers = {"api-key": self.settings.azure_openai_api_key or ""}

        start = time.time()
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.llm_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(self.url, params=params, headers=headers, json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Failed to generate AI completion: {exc}") from exc

        latency_ms = int((time.time() - start) * 1000)
        logger.debug("llm.chat.complete latency_ms=%s", latency_ms)
        return ChatResult(text=_extract_text_from_response(payload), latency_ms=latency_ms)

    async def generate_structured(
        self, system_prompt: str, user_prompt: str, schema: type[T], schema_hint: str
    ) -> T:
        """Single structured completion validated against ``schema``. No retries."""
        full_prompt = f"{user_prompt}\n\nRespond with valid JSON matching this schema:\n{schema_hint}"
        result = await self._chat(
            [
                {"role": "system", "content": system_prompt + JSON_ONLY_SUFFIX},
                {"role": "user", "content": full_prompt},
            ],
            temperature=0.2,
            max_tokens=1500,
        )
        return parse_structured(result.text or "{}", schema)

    async def generate_text(
        self, system_prompt: str, user_prompt: str, temperature: float = 0.3
    ) -> str:
        result = await self._chat(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=1000,
        )
        return result.text

    async def describe_image(
        self, image_b64: str, prompt: str, high_detail: bool = False
    ) -> str:
        """Send one JPEG (base64, no data-URI prefix) with an instruction prompt."""
        content = [
            {"type": "text", "text": prompt},
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:image/jpeg;base64,{image_b64}",
                    # Low detail is several times faster and enough for triage.
                    "detail": "high" if high_detail else "low",
                },
            },
        ]
        result = await self._chat(
            [{"role": "user", "content": content}],
            temperature=0.1,
            max_tokens=500,
        )
        logger.info("llm.image.described chars=%s", len(result.text))
        return result.text
