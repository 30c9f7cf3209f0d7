"""Hosted model clients."""
