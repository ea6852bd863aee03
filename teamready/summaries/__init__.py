"""Per-team daily summaries."""
