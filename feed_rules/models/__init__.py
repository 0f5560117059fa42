"""Data models for feed_rules."""
