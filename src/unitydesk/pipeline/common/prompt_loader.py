"""Prompt loading utilities."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


PROMPTS_ROOT = Path(__file__).resolve().parents[2] / "prompts"

STAGES: tuple[str, ...] = (
    "validation",
    "understanding",
    "classification",
    "scoring",
    "summarization",
    "vision",
    "edge_validation",
    "text_analysis",
    "policy",
)


def prompt_path(stage: str, prompt_version: str) -> Path:
    """Resolve a prompt file path from a stage name and a version like 'v001'."""
    if stage not in STAGES:
        raise ValueError(f"Unknown prompt stage: {stage!r}")

    if not prompt_version.startswith("v"):
        raise ValueError("prompt_version must start with 'v'")

    return PROMPTS_ROOT / stage / f"{prompt_version}.md"


@lru_cache(maxsize=64)
def load_prompt(stage: str, prompt_version: str = "v001") -> str:
    """Load a prompt file as UTF-8 text."""
    path = prompt_path(stage=stage, prompt_version=prompt_version)
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return path.read_text(encoding="utf-8").strip()
