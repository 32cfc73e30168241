"""HTTP boundary over the consistency engine."""
