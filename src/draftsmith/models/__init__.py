"""Data models for Draftsmith."""
