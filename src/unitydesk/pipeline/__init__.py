"""AI processing pipeline."""
