"""Prompt context built from a normalized submission."""

from __future__ import annotations

from unitydesk.models import NormalizedInput


def input_context(normalized: NormalizedInput) -> str:
    """Render every modality and side-channel into one labelled block."""
    descriptions = ", ".join(normalized.image_descriptions)
    lines = [
        f"Text: {normalized.text_content or 'None'}",
        f"Image Descriptions: {descriptions or 'None'}",
        f"Voice Transcript: {normalized.voice_transcript or 'None'}",
        f"Location: {normalized.location_hint() or 'Not provided'}",
        f"Ward: {normalized.ward or 'Not provided'}",
    ]
    return "\n".join(lines)
