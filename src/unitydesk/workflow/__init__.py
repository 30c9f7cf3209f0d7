"""Step-by-step complaint submission workflow."""
