"""Shared pipeline helpers."""
