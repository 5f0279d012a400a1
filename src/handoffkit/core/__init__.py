"""Handoff routing core."""
