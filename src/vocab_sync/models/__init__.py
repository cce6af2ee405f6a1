"""Data models for vocab-sync."""
