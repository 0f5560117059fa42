"""Condition evaluator.

Evaluates a rule's match condition against an article. Simple rules carry a
single Condition; rules using advanced conditions carry an AND/OR tree whose
leaves go through the same evaluator.
"""

from functools import lru_cache
from typing import Optional

import regex

from feed_rules.logging_config import get_logger
from feed_rules.models.schemas import (
    Article,
    Condition,
    ConditionGroup,
    ConditionNode,
    LogicalOperator,
    Rule,
    RuleFieldTarget,
    RuleOperator,
)

logger = get_logger(__name__)

DEFAULT_REGEX_TIMEOUT = 0.1


def extract_field(article: Article, target: RuleFieldTarget) -> str:
    """Get the text of an article field, or "" when it is unset.

    Content falls back to the summary for feeds that only publish one.
    """
    if target == RuleFieldTarget.CONTENT:
        text = article.content if article.content is not None else article.summary
    else:
        text = {
            RuleFieldTarget.TITLE: article.title,
            RuleFieldTarget.SUMMARY: article.summary,
            RuleFieldTarget.AUTHOR: article.author,
            RuleFieldTarget.CATEGORIES: article.categories,
            RuleFieldTarget.LINK: article.link,
        }.get(target)

    return text or ""


@lru_cache(maxsize=256)
def _compile(pattern: str, ignore_case: bool) -> Optional[regex.Pattern]:
    try:
        return regex.compile(pattern, regex.IGNORECASE if ignore_case else 0)
    except regex.error as e:
        logger.warning(f"Invalid regex pattern '{pattern}': {e}")
        return None


class ConditionEvaluator:
    """Applies rule operators to article text.

    Args:
        case_sensitive: Default for conditions that do not set
            is_case_sensitive themselves
        regex_timeout: Seconds a single regex search may run; a search
            that runs longer counts as no match
    """

    def __init__(
        self,
        case_sensitive: bool = True,
        regex_timeout: float = DEFAULT_REGEX_TIMEOUT,
    ):
        self.case_sensitive = case_sensitive
        self.regex_timeout = regex_timeout

    def matches(self, rule: Rule, article: Article) -> bool:
        """Evaluate a rule's condition, or its condition tree, on an article."""
        if rule.conditions is not None:
            result = self.matches_node(rule.conditions, article)
        else:
            result = self.matches_condition(rule.condition, article)

        logger.debug(f"Rule '{rule.name}' condition on article {article.id}: {result}")
        return result

    def matches_node(self, node: ConditionNode, article: Article) -> bool:
        """Evaluate a leaf or a group; groups short-circuit.

        An empty AND group is true and an empty OR group is false.
        """
        if isinstance(node, ConditionGroup):
            results = (self.matches_node(child, article) for child in node.children)
            if node.operator == LogicalOperator.OR:
                return any(results)
            return all(results)

        return self.matches_condition(node, article)

    def matches_condition(self, condition: Condition, article: Article) -> bool:
        text = extract_field(article, condition.target)
        return self.matches_text(condition, text)

    def matches_text(self, condition: Condition, text: str) -> bool:
        """Test a single condition against raw text.

        Args:
            condition: Leaf condition
            text: Text standing in for the target field

        Returns:
            Whether the condition holds, after negation
        """
        result = self._apply_operator(condition, text)
        return not result if condition.negate else result

    def _apply_operator(self, condition: Condition, text: str) -> bool:
        operator = condition.operator

        if operator == RuleOperator.IS_EMPTY:
            return not text.strip()
        if operator == RuleOperator.IS_NOT_EMPTY:
            return bool(text.strip())

        case_sensitive = (
            self.case_sensitive
            if condition.is_case_sensitive is None
            else condition.is_case_sensitive
        )

        if operator == RuleOperator.REGEX:
            if not condition.regex_pattern.strip():
                return False
            pattern = _compile(condition.regex_pattern, not case_sensitive)
            if pattern is None:
                return False
            try:
                return pattern.search(text, timeout=self.regex_timeout) is not None
            except TimeoutError:
                logger.warning(
                    f"Regex pattern '{condition.regex_pattern}' timed out after "
                    f"{self.regex_timeout}s, treating as no match"
                )
                return False

        value = condition.value
        if not case_sensitive:
            text = text.casefold()
            value = value.casefold()

        if operator == RuleOperator.CONTAINS:
            return value in text
        if operator == RuleOperator.EQUALS:
            return text == value
        if operator == RuleOperator.STARTS_WITH:
            return text.startswith(value)
        if operator == RuleOperator.ENDS_WITH:
            return text.endswith(value)

        return False
