"""Input normalization: text, voice and photos into one NormalizedInput."""

from __future__ import annotations

import base64
import binascii
import math
from typing import Optional

from unitydesk.config import Settings
from unitydesk.errors import InputError
from unitydesk.models import GeoPoint, NormalizedInput, RawSubmission
from unitydesk.pipeline.llm.azure_openai import CompletionClient
from unitydesk.pipeline.llm.speech import SpeechClient
from unitydesk.pipeline.vision import describe_image
from unitydesk.utils.logging import get_logger
from unitydesk.utils.text import or_none, strip_data_uri


logger = get_logger(__name__)

IMAGE_CONTENT_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/heic",
}
AUDIO_CONTENT_TYPES = {
    "audio/wav",
    "audio/x-wav",
    "audio/webm",
    "audio/ogg",
    "audio/mpeg",
    "audio/mp4",
}


def parse_coordinate(value: Optional[str], low: float, high: float) -> Optional[float]:
    """Parse a coordinate string; invalid or missing values become None."""
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number) or not (low <= number <= high):
        return None
    return number


def parse_location(lat: Optional[str], lng: Optional[str]) -> Optional[GeoPoint]:
    parsed_lat = parse_coordinate(lat, -90.0, 90.0)
    parsed_lng = parse_coordinate(lng, -180.0, 180.0)
    if parsed_lat is None or parsed_lng is None:
        return None
    return GeoPoint(lat=parsed_lat, lng=parsed_lng)


def decode_image(value: str) -> bytes:
    """Decode a base64 image (data URI prefix allowed)."""
    try:
        return base64.b64decode(strip_data_uri(value), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputError("Invalid image data") from exc


def check_upload(
    data: bytes,
    content_type: Optional[str],
    kind: str,
    settings: Settings,
) -> None:
    """Reject oversized or unsupported files before anything leaves the process."""
    if len(data) > settings.max_upload_bytes:
        raise InputError(f"File too large (max {settings.max_upload_mb} MB)")

    if not content_type:
        return
    base_type = content_type.split(";")[0].strip().lower()
    allowed = IMAGE_CONTENT_TYPES if kind == "image" else AUDIO_CONTENT_TYPES
    if base_type not in allowed:
        raise InputError(f"Unsupported {kind} type: {base_type}")


def check_submission(raw: RawSubmission, settings: Settings) -> None:
    if len(raw.images) > settings.max_images_per_request:
        raise InputError(f"Maximum {settings.max_images_per_request} images allowed")
    for image in raw.images:
        check_upload(image.data, image.content_type, "image", settings)
    if raw.voice is not None and raw.voice.data:
        check_upload(raw.voice.data, raw.voice.content_type, "audio", settings)


async def normalize_input(
    raw: RawSubmission,
    llm: CompletionClient,
    speech: Optional[SpeechClient] = None,
) -> NormalizedInput:
    """Turn one submission into the text every stage consumes.

    A failed transcription or image description is logged and skipped; the
    other modalities still go through. Each external call is attempted once.
    """
    normalized = NormalizedInput(
        text_content=(raw.text or "").strip(),
        manual_location=or_none(raw.manual_location),
        ward=or_none(raw.ward),
        location=parse_location(raw.location_lat, raw.location_lng),
    )

    if raw.voice is not None and raw.voice.data:
        if speech is None:
            logger.warning("normalize.voice.skipped reason=speech_not_configured")
        else:
            try:
                transcript = await speech.transcribe(raw.voice.data, raw.voice.content_type)
            except Exception:
                logger.exception("normalize.voice.failed")
            else:
                normalized.voice_transcript = transcript
                if transcript:
                    separator = " " if normalized.text_content else ""
                    normalized.text_content += separator + transcript

    precomputed = [d for d in raw.image_descriptions if d and d.strip()]
    if precomputed:
        normalized.image_descriptions = precomputed
        return normalized

    for index, image in enumerate(raw.images):
        if not image.data:
            continue
        try:
            description = await describe_image(llm, base64.b64encode(image.data).decode("ascii"))
        except Exception:
            logger.exception("normalize.image.failed index=%s", index)
            continue
        normalized.image_descriptions.append(description)

    logger.info(
        "normalize.complete text_chars=%s images=%s voice=%s",
        len(normalized.text_content),
        len(normalized.image_descriptions),
        normalized.voice_transcript is not None,
    )
    return normalized
