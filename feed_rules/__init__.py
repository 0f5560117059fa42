"""feed_rules - rule evaluation and action engine for a personal feed reader."""

__version__ = "0.1.0"
