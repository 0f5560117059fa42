"""Scope filter.

Decides whether a rule's feed or category scope covers an article.
"""

from typing import Optional

from feed_rules.models.schemas import (
    AllFeeds,
    Article,
    Feed,
    Rule,
    SpecificCategories,
    SpecificFeeds,
)


def in_scope(rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
    """Check whether a rule may apply to an article.

    Args:
        rule: Rule whose scope is tested
        article: Candidate article
        feed: The article's feed, already resolved by the caller

    Returns:
        True if the article falls inside the rule's scope
    """
    scope = rule.scope

    if isinstance(scope, AllFeeds):
        return True

    if isinstance(scope, SpecificFeeds):
        return article.feed_id in scope.feed_ids

    if isinstance(scope, SpecificCategories):
        if feed is None or feed.category_id is None:
            return False
        return feed.category_id in scope.category_ids

    return False
