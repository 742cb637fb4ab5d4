"""Data models for test records, run summaries and runner results."""
