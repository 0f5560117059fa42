"""Rule service.

Application-facing entry point to the rule engine: rule management,
statistics, and evaluation of articles. Collaborators are injected so the
service can run on the SQLite repositories or on any other store.
"""

import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from feed_rules.config import EngineConfig, get_config
from feed_rules.engine import validator
from feed_rules.engine.actions import ActionExecutor
from feed_rules.engine.conditions import ConditionEvaluator
from feed_rules.engine.errors import RuleConflictError
from feed_rules.engine.pipeline import EvaluationPipeline
from feed_rules.logging_config import get_logger
from feed_rules.models.schemas import (
    Article,
    Rule,
    RuleDraft,
    RuleStatistics,
    RuleTestResult,
)
from feed_rules.services.notifier import LoggingNotifier
from feed_rules.storage.interfaces import (
    ArticleRepository,
    FeedRepository,
    Notifier,
    RuleRepository,
    TagAssociations,
)

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Timestamps written without an offset are UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class RuleService:
    """Manages rules and applies them to articles.

    Args:
        rule_repository: Rule store
        article_repository: Article store
        feed_repository: Feed store
        tag_associations: Receives tag ids for ApplyTags actions
        notifier: Receives Notify actions (logs them if not provided)
        config: Engine settings (uses get_config() if not provided)
    """

    def __init__(
        self,
        rule_repository: RuleRepository,
        article_repository: ArticleRepository,
        feed_repository: FeedRepository,
        tag_associations: TagAssociations,
        notifier: Optional[Notifier] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or get_config()
        self._rules = rule_repository
        self._articles = article_repository
        self._feeds = feed_repository

        evaluator = ConditionEvaluator(
            case_sensitive=self.config.case_sensitive,
            regex_timeout=self.config.regex_timeout,
        )
        self._evaluator = evaluator
        self.pipeline = EvaluationPipeline(rule_repository, feed_repository, evaluator)
        self.executor = ActionExecutor(
            rule_repository,
            article_repository,
            feed_repository,
            tag_associations,
            notifier or LoggingNotifier(),
            evaluator,
        )

    # Rule management

    async def get_rule(self, rule_id: int) -> Optional[Rule]:
        return await self._rules.get_by_id(rule_id)

    async def get_all_rules(self) -> List[Rule]:
        return await self._rules.get_all()

    async def get_active_rules(self) -> List[Rule]:
        return await self._rules.get_active()

    async def rule_exists_by_name(self, name: str) -> bool:
        return await self._rules.exists_by_name(name)

    async def create_rule(self, draft: RuleDraft) -> Rule:
        """Validate and store a new rule.

        New rules always start enabled.

        Args:
            draft: Rule definition

        Returns:
            The stored Rule, with its id set

        Raises:
            ValueError: If draft is None
            RuleValidationError: If the definition is malformed
            RuleConflictError: If a rule with the same name exists
        """
        if draft is None:
            raise ValueError("rule is required")

        rule = validator.validate(draft)

        if await self._rules.exists_by_name(rule.name):
            logger.warning(f"Rule with name '{rule.name}' already exists")
            raise RuleConflictError(rule.name)

        now = _now()
        rule.id = None
        rule.is_enabled = True
        rule.match_count = 0
        rule.created_at = now
        rule.last_modified = now
        rule.last_match_date = None

        rule = await self._rules.insert(rule)
        logger.info(f"Created rule '{rule.name}' (ID: {rule.id})")
        return rule

    async def update_rule(self, draft: RuleDraft) -> bool:
        """Replace the definition of an existing rule.

        Match statistics and the creation time are kept.

        Args:
            draft: Rule definition carrying the id of the rule to update

        Returns:
            True if the rule was updated, False if no rule has that id

        Raises:
            ValueError: If draft is None
            RuleValidationError: If the definition is malformed
            RuleConflictError: If the new name belongs to another rule
        """
        if draft is None:
            raise ValueError("rule is required")

        existing = await self._rules.get_by_id(draft.id) if draft.id is not None else None
        if existing is None:
            logger.warning(f"Attempted to update non-existent rule: ID {draft.id}")
            return False

        rule = validator.validate(draft)

        if rule.name != existing.name and await self._rules.exists_by_name(rule.name):
            raise RuleConflictError(rule.name)

        rule = replace(
            rule,
            id=existing.id,
            match_count=existing.match_count,
            created_at=existing.created_at,
            last_match_date=existing.last_match_date,
            last_modified=_now(),
        )

        success = await self._rules.update(rule)
        if success:
            logger.info(f"Updated rule '{rule.name}' (ID: {rule.id})")
        else:
            logger.warning(f"No changes made to rule '{rule.name}' (ID: {rule.id})")
        return success

    async def validate_rule(self, draft: Optional[RuleDraft]) -> bool:
        """Check a definition without touching the store."""
        return validator.is_valid(draft)

    async def delete_rule(self, rule_id: int) -> bool:
        success = await self._rules.delete(rule_id)
        if success:
            logger.info(f"Deleted rule with ID: {rule_id}")
        return success

    async def toggle_rule(self, rule_id: int) -> bool:
        """Flip a rule between enabled and disabled."""
        success = await self._rules.toggle_enabled(rule_id)
        if not success:
            logger.warning(f"Attempted to toggle non-existent rule: ID {rule_id}")
        return success

    async def reset_rule_statistics(self, rule_id: int) -> bool:
        success = await self._rules.reset_statistics(rule_id)
        if not success:
            logger.warning(f"Attempted to reset statistics of non-existent rule: ID {rule_id}")
        return success

    # Statistics

    async def get_total_match_count(self) -> int:
        return await self._rules.get_total_match_count()

    async def get_top_rules_by_match_count(self, limit: Optional[int] = None) -> List[Rule]:
        if limit is None:
            limit = self.config.top_rules_limit
        return await self._rules.get_top_by_match_count(limit)

    async def get_rule_statistics(self, rule_id: int) -> Optional[RuleStatistics]:
        """Summarize how often a rule has matched.

        Args:
            rule_id: Rule to report on

        Returns:
            RuleStatistics, or None if no rule has that id

        Raises:
            ValueError: If rule_id is not positive
        """
        if rule_id <= 0:
            raise ValueError("Rule ID must be greater than 0")

        rule = await self._rules.get_by_id(rule_id)
        if rule is None:
            logger.warning(f"Rule not found for statistics: ID {rule_id}")
            return None

        now = _now()
        stats = RuleStatistics(
            rule_id=rule.id,
            name=rule.name,
            is_enabled=rule.is_enabled,
            match_count=rule.match_count,
            created_at=rule.created_at,
            last_match_date=rule.last_match_date,
        )

        if rule.last_match_date is not None:
            stats.time_since_last_match = now - _as_utc(rule.last_match_date)

        if rule.created_at is not None:
            days = (now - _as_utc(rule.created_at)).total_seconds() / 86400
            if days > 0:
                stats.average_matches_per_day = rule.match_count / days

        return stats

    # Evaluation

    async def get_unread_articles(
        self, feed_id: Optional[int] = None, limit: int = 500
    ) -> List[Article]:
        return await self._articles.list_unread(feed_id=feed_id, limit=limit)

    async def evaluate_article(self, article: Optional[Article]) -> List[Rule]:
        return await self.pipeline.evaluate(article)

    async def evaluate_articles_batch(
        self, articles: Iterable[Optional[Article]]
    ) -> Dict[int, List[Rule]]:
        """Evaluate several articles, one after the other.

        Args:
            articles: Articles to classify; None entries are skipped

        Returns:
            Matched rules keyed by article id, for articles with at least
            one match
        """
        results: Dict[int, List[Rule]] = {}
        total = 0

        for article in articles:
            if article is None:
                continue
            total += 1

            matched = await self.pipeline.evaluate(article)
            if matched:
                results[article.id] = matched

        logger.info(f"Batch evaluation completed: {len(results)} of {total} articles matched rules")
        return results

    async def execute_rule_actions(
        self, rule: Optional[Rule], article: Optional[Article]
    ) -> bool:
        return await self.executor.execute_actions(rule, article)

    async def process_article(self, article: Optional[Article]) -> List[Rule]:
        """Evaluate an article and apply the action of every matched rule.

        Each matched rule is counted once, by the evaluation, and acts on
        the feed resolved during that evaluation.

        Args:
            article: Article to classify and act on

        Returns:
            The rules whose actions were applied, in evaluation order
        """
        matched, feed = await self.pipeline.evaluate_with_feed(article)

        for rule in matched:
            await self.executor.apply_action(rule, article, feed)

        return matched

    def test_rule(self, rule: Rule, text: str) -> bool:
        """Dry-run a rule's condition with every article field set to text.

        Scope is ignored and nothing is persisted.
        """
        sample = Article(
            id=0,
            feed_id=0,
            title=text,
            content=text,
            summary=text,
            author=text,
            categories=text,
            link=text,
        )
        return self._evaluator.matches(rule, sample)

    async def test_rule_on_articles(
        self, rule_id: int, article_ids: Sequence[int]
    ) -> RuleTestResult:
        """Dry-run a stored rule's condition over stored articles.

        Scope is ignored and nothing is persisted. Non-positive and unknown
        article ids count as tested but never match.

        Raises:
            ValueError: If no rule has that id
        """
        rule = await self._rules.get_by_id(rule_id)
        if rule is None:
            raise ValueError(f"Rule with ID {rule_id} not found")

        logger.debug(f"Testing rule '{rule.name}' against {len(article_ids)} sample articles")

        result = RuleTestResult(rule_name=rule.name, total_tested=len(article_ids))
        started = time.perf_counter()

        for article_id in article_ids:
            if article_id <= 0:
                continue

            article = await self._articles.get_by_id(article_id)
            if article is not None and self._evaluator.matches(rule, article):
                result.matched_count += 1
                result.matched_article_ids.append(article_id)

        if article_ids:
            elapsed_ms = (time.perf_counter() - started) * 1000
            result.average_evaluation_ms = elapsed_ms / len(article_ids)

        logger.info(
            f"Rule test completed: {result.matched_count}/{result.total_tested} matches, "
            f"avg {result.average_evaluation_ms:.2f}ms"
        )
        return result
