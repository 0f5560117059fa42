"""Action executor.

Applies a rule's configured action to an article once the match has been
confirmed. Every action overwrites state rather than toggling it, so running
the same rule twice leaves the article unchanged the second time.
"""

from typing import Optional

from feed_rules.engine.conditions import ConditionEvaluator
from feed_rules.engine.scope import in_scope
from feed_rules.logging_config import get_logger
from feed_rules.models.schemas import (
    ApplyTags,
    Article,
    ArticleStatus,
    Feed,
    HighlightArticle,
    MarkAsFavorite,
    MarkAsRead,
    MarkAsStarred,
    MoveToCategory,
    Notify,
    Rule,
)
from feed_rules.storage.interfaces import (
    ArticleRepository,
    FeedRepository,
    Notifier,
    RuleRepository,
    TagAssociations,
)

logger = get_logger(__name__)


class ActionExecutor:
    """Executes rule actions against articles and their feeds."""

    def __init__(
        self,
        rule_repository: RuleRepository,
        article_repository: ArticleRepository,
        feed_repository: FeedRepository,
        tag_associations: TagAssociations,
        notifier: Notifier,
        evaluator: Optional[ConditionEvaluator] = None,
    ):
        self._rules = rule_repository
        self._articles = article_repository
        self._feeds = feed_repository
        self._tags = tag_associations
        self._notifier = notifier
        self._evaluator = evaluator or ConditionEvaluator()

    async def execute_actions(self, rule: Optional[Rule], article: Optional[Article]) -> bool:
        """Re-check a rule against an article and run its action on a match.

        The match is always re-evaluated here, so this is safe to call
        without a prior evaluate().

        Args:
            rule: Rule whose action to run
            article: Target article

        Returns:
            True if the rule matched and its action was applied
        """
        if rule is None or article is None:
            logger.warning("Rule or article missing for action execution")
            return False

        feed = await self._feeds.get_by_id(article.feed_id)
        if feed is None:
            logger.debug(f"Feed {article.feed_id} not found, rule '{rule.name}' cannot apply")
            return False

        if not in_scope(rule, article, feed) or not self._evaluator.matches(rule, article):
            logger.debug(f"Rule '{rule.name}' does not match article {article.id}")
            return False

        await self.apply_action(rule, article, feed)

        await self._rules.increment_match_count(rule.id)
        rule.match_count += 1
        return True

    async def apply_action(self, rule: Rule, article: Article, feed: Feed) -> None:
        """Apply a rule's action without checking the match.

        Args:
            rule: Rule whose action to run
            article: Target article, mutated in place
            feed: The article's feed, mutated for MoveToCategory
        """
        action = rule.action
        logger.info(
            f"Executing {type(action).__name__} from rule '{rule.name}' on article {article.id}"
        )

        if isinstance(action, MarkAsRead):
            article.status = ArticleStatus.READ
            await self._articles.update(article)

        elif isinstance(action, MarkAsStarred):
            article.is_starred = True
            await self._articles.update(article)

        elif isinstance(action, MarkAsFavorite):
            article.is_favorite = True
            await self._articles.update(article)

        elif isinstance(action, HighlightArticle):
            article.highlight_color = action.color
            await self._articles.update(article)

        elif isinstance(action, ApplyTags):
            await self._tags.apply(list(action.tag_ids), article.id)

        elif isinstance(action, MoveToCategory):
            feed.category_id = action.category_id
            await self._feeds.update(feed)

        elif isinstance(action, Notify):
            await self._notifier.notify(rule, article)

        else:
            raise TypeError(f"Unsupported action {action!r}")
