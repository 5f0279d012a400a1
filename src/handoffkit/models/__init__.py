"""Data models for handoffkit."""
