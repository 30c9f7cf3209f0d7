"""Configuration package."""

from unitydesk.config.settings import Settings

__all__ = ["Settings"]
