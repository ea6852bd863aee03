"""Approved-leave coverage."""
