"""Complaint persistence."""
