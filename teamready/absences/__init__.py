"""Absence detection, justification and review."""
