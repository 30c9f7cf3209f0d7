"""Azure Speech short-audio REST client."""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from unitydesk.config import Settings
from unitydesk.errors import ConfigurationError, ExternalServiceError
from unitydesk.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_AUDIO_CONTENT_TYPE = "audio/wav; codecs=audio/pcm; samplerate=16000"


class SpeechClient(Protocol):
    async def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str: ...


class AzureSpeechClient:
    """Speech-to-text through the Azure recognition REST endpoint."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        if not self.settings.has_speech():
            raise ConfigurationError("AZURE_SPEECH_KEY and AZURE_SPEECH_REGION must be set")
        self._transport = transport

    @property
    def url(self) -> str:
        return (
            f"https://{self.settings.azure_speech_region}.stt.speech.microsoft.com"
            "/speech/recognition/conversation/cognitiveservices/v1"
        )

    async def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str:
        """Return the recognised text for one recording."""
        headers = {
            "Ocp-Apim-Subscription-Key": self.settings.azure_speech_key or "",
            "Content-Type": content_type or DEFAULT_AUDIO_CONTENT_TYPE,
            "Accept": "application/json",
        }
        params = {"language": self.settings.speech_language, "format": "simple"}

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.llm_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(self.url, params=params, headers=headers, content=audio)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Speech recognition failed: {exc}") from exc

        status = payload.get("RecognitionStatus")
        if status != "Success":
            raise ExternalServiceError(f"Speech recognition failed: {status}")

        transcript = (payload.get("DisplayText") or "").strip()
        logger.info("speech.transcribed chars=%s", len(transcript))
        return transcript
