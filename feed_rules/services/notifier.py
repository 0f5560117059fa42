"""Notification collaborator.

Delivery itself belongs to the host application; this default only records
that a rule asked for a notification.
"""

from feed_rules.logging_config import get_logger
from feed_rules.models.schemas import Article, Rule

logger = get_logger(__name__)


class LoggingNotifier:
    """Notifier that writes each notification to the log."""

    async def notify(self, rule: Rule, article: Article) -> None:
        logger.info(
            f"Notification from rule '{rule.name}': {article.title or '(untitled)'}"
            f" [{article.link or 'no link'}]"
        )
