"""Citizen input intake."""
