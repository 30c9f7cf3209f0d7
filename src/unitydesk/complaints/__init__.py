"""Complaint records, reference IDs and reports."""
