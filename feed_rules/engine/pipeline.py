"""Evaluation pipeline.

Runs every enabled rule against one article, in priority order, and records
a match for each rule whose scope and condition both hold.
"""

from typing import List, Optional, Tuple

from feed_rules.engine.conditions import ConditionEvaluator
from feed_rules.engine.scope import in_scope
from feed_rules.logging_config import get_logger
from feed_rules.models.schemas import Article, Feed, Rule
from feed_rules.storage.interfaces import FeedRepository, RuleRepository

logger = get_logger(__name__)


class EvaluationPipeline:
    """Matches articles against the active rule set.

    Rules are re-fetched on every call so edits made between two evaluations
    are always seen. Store errors propagate to the caller untouched.

    Args:
        rule_repository: Source of active rules and match-count updates
        feed_repository: Resolves the article's feed for scope checks
        evaluator: Condition evaluator (case-sensitive by default)
    """

    def __init__(
        self,
        rule_repository: RuleRepository,
        feed_repository: FeedRepository,
        evaluator: Optional[ConditionEvaluator] = None,
    ):
        self._rules = rule_repository
        self._feeds = feed_repository
        self._evaluator = evaluator or ConditionEvaluator()

    async def evaluate(self, article: Optional[Article]) -> List[Rule]:
        """Evaluate an article against all enabled rules.

        Rules run by ascending priority, ties broken by id. Each match bumps
        the rule's match count in the store; a matching rule with
        stop_on_match ends the run.

        Args:
            article: Article to classify

        Returns:
            Matched rules in evaluation order (empty if article is None, no
            rule is enabled, or the article's feed cannot be resolved)
        """
        matched, _ = await self.evaluate_with_feed(article)
        return matched

    async def evaluate_with_feed(
        self, article: Optional[Article]
    ) -> Tuple[List[Rule], Optional[Feed]]:
        """Like evaluate(), also returning the feed resolved for the article.

        The feed is None whenever it was not looked up or not found.
        """
        if article is None:
            logger.warning("Attempted to evaluate a missing article")
            return [], None

        rules = await self._rules.get_active()
        if not rules:
            logger.debug("No active rules found for article evaluation")
            return [], None

        feed = await self._feeds.get_by_id(article.feed_id)
        if feed is None:
            logger.warning(
                f"Feed {article.feed_id} for article {article.id} not found, no rules apply"
            )
            return [], None

        matched: List[Rule] = []

        for rule in sorted(rules, key=lambda r: (r.priority, r.id)):
            if not in_scope(rule, article, feed):
                continue

            if not self._evaluator.matches(rule, article):
                continue

            matched.append(rule)
            await self._rules.increment_match_count(rule.id)
            rule.match_count += 1

            if rule.stop_on_match:
                logger.debug(f"Rule '{rule.name}' matched with stop_on_match, stopping evaluation")
                break

        logger.info(f"Article {article.id} matched {len(matched)} rules")
        return matched, feed
