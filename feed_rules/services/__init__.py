"""Services for feed_rules."""

from .notifier import LoggingNotifier
from .rule_service import RuleService

__all__ = [
    "LoggingNotifier",
    "RuleService",
]
