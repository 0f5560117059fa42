"""Data models for feed_rules.

This module defines the core data structures for feeds, articles and rules.
Scopes and actions are tagged variants carrying only their own payload, so a
Rule can never hold a feed id list without also being scoped to feeds.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import ClassVar, List, Optional, Tuple, Union


class ArticleStatus(str, Enum):
    UNREAD = "Unread"
    READ = "Read"


class RuleFieldTarget(str, Enum):
    TITLE = "Title"
    CONTENT = "Content"
    SUMMARY = "Summary"
    AUTHOR = "Author"
    CATEGORIES = "Categories"
    LINK = "Link"


class RuleOperator(str, Enum):
    CONTAINS = "Contains"
    EQUALS = "Equals"
    STARTS_WITH = "StartsWith"
    ENDS_WITH = "EndsWith"
    REGEX = "Regex"
    IS_EMPTY = "IsEmpty"
    IS_NOT_EMPTY = "IsNotEmpty"

    @property
    def requires_value(self) -> bool:
        """Whether the operator compares against a value."""
        return self not in (RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY)


class RuleActionType(str, Enum):
    MARK_AS_READ = "MarkAsRead"
    MARK_AS_STARRED = "MarkAsStarred"
    MARK_AS_FAVORITE = "MarkAsFavorite"
    APPLY_TAGS = "ApplyTags"
    MOVE_TO_CATEGORY = "MoveToCategory"
    HIGHLIGHT_ARTICLE = "HighlightArticle"
    NOTIFY = "Notify"


class RuleScope(str, Enum):
    ALL_FEEDS = "AllFeeds"
    SPECIFIC_FEEDS = "SpecificFeeds"
    SPECIFIC_CATEGORIES = "SpecificCategories"


class LogicalOperator(str, Enum):
    AND = "And"
    OR = "Or"


@dataclass
class Feed:
    """Represents a subscribed feed."""

    id: int
    title: str
    url: str
    category_id: Optional[int] = None


@dataclass
class Article:
    """Represents an article pulled from a feed."""

    id: int
    feed_id: int
    title: Optional[str] = None
    content: Optional[str] = None
    summary: Optional[str] = None
    author: Optional[str] = None
    categories: Optional[str] = None
    link: Optional[str] = None
    published_date: Optional[datetime] = None
    status: ArticleStatus = ArticleStatus.UNREAD
    is_starred: bool = False
    is_favorite: bool = False
    highlight_color: Optional[str] = None


# Scopes


@dataclass(frozen=True)
class AllFeeds:
    kind: ClassVar[RuleScope] = RuleScope.ALL_FEEDS


@dataclass(frozen=True)
class SpecificFeeds:
    feed_ids: Tuple[int, ...]
    kind: ClassVar[RuleScope] = RuleScope.SPECIFIC_FEEDS


@dataclass(frozen=True)
class SpecificCategories:
    category_ids: Tuple[int, ...]
    kind: ClassVar[RuleScope] = RuleScope.SPECIFIC_CATEGORIES


Scope = Union[AllFeeds, SpecificFeeds, SpecificCategories]


# Actions


@dataclass(frozen=True)
class MarkAsRead:
    kind: ClassVar[RuleActionType] = RuleActionType.MARK_AS_READ


@dataclass(frozen=True)
class MarkAsStarred:
    kind: ClassVar[RuleActionType] = RuleActionType.MARK_AS_STARRED


@dataclass(frozen=True)
class MarkAsFavorite:
    kind: ClassVar[RuleActionType] = RuleActionType.MARK_AS_FAVORITE


@dataclass(frozen=True)
class ApplyTags:
    tag_ids: Tuple[int, ...]
    kind: ClassVar[RuleActionType] = RuleActionType.APPLY_TAGS


@dataclass(frozen=True)
class MoveToCategory:
    category_id: int
    kind: ClassVar[RuleActionType] = RuleActionType.MOVE_TO_CATEGORY


@dataclass(frozen=True)
class HighlightArticle:
    color: str
    kind: ClassVar[RuleActionType] = RuleActionType.HIGHLIGHT_ARTICLE


@dataclass(frozen=True)
class Notify:
    kind: ClassVar[RuleActionType] = RuleActionType.NOTIFY


Action = Union[
    MarkAsRead,
    MarkAsStarred,
    MarkAsFavorite,
    ApplyTags,
    MoveToCategory,
    HighlightArticle,
    Notify,
]


# Conditions


@dataclass
class Condition:
    """A single field test against an article.

    is_case_sensitive of None defers to the engine-wide default.
    """

    target: RuleFieldTarget = RuleFieldTarget.TITLE
    operator: RuleOperator = RuleOperator.CONTAINS
    value: str = ""
    regex_pattern: str = ""
    is_case_sensitive: Optional[bool] = None
    negate: bool = False


@dataclass
class ConditionGroup:
    """A compound AND/OR node over conditions and nested groups."""

    operator: LogicalOperator = LogicalOperator.AND
    children: List[Union[Condition, "ConditionGroup"]] = field(default_factory=list)


ConditionNode = Union[Condition, ConditionGroup]


@dataclass
class RuleDraft:
    """A rule definition as submitted by a caller, before validation.

    Id lists are JSON-encoded strings such as "[1, 2]"; the validator turns
    them into typed scope and action variants.
    """

    name: str
    id: Optional[int] = None
    description: str = ""
    target: RuleFieldTarget = RuleFieldTarget.TITLE
    operator: RuleOperator = RuleOperator.CONTAINS
    value: str = ""
    regex_pattern: str = ""
    is_case_sensitive: Optional[bool] = None
    is_enabled: bool = True
    priority: int = 100
    action_type: RuleActionType = RuleActionType.NOTIFY
    scope: RuleScope = RuleScope.ALL_FEEDS
    feed_ids: Optional[str] = None
    category_ids: Optional[str] = None
    tag_ids: Optional[str] = None
    category_id: Optional[int] = None
    highlight_color: Optional[str] = None
    stop_on_match: bool = False
    uses_advanced_conditions: bool = False
    conditions: Optional[ConditionGroup] = None


@dataclass
class Rule:
    """A validated automation rule."""

    id: Optional[int]
    name: str
    condition: Condition
    scope: Scope
    action: Action
    description: str = ""
    is_enabled: bool = True
    priority: int = 100
    stop_on_match: bool = False
    conditions: Optional[ConditionGroup] = None
    match_count: int = 0
    created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    last_match_date: Optional[datetime] = None

    @property
    def uses_advanced_conditions(self) -> bool:
        return self.conditions is not None


@dataclass
class RuleStatistics:
    """Match statistics for one rule at a point in time."""

    rule_id: int
    name: str
    is_enabled: bool
    match_count: int
    created_at: Optional[datetime] = None
    last_match_date: Optional[datetime] = None
    time_since_last_match: Optional[timedelta] = None
    average_matches_per_day: float = 0.0


@dataclass
class RuleTestResult:
    """Outcome of dry-running a rule over stored articles."""

    rule_name: str
    total_tested: int = 0
    matched_count: int = 0
    matched_article_ids: List[int] = field(default_factory=list)
    average_evaluation_ms: float = 0.0

    @property
    def match_percentage(self) -> float:
        if self.total_tested == 0:
            return 0.0
        return self.matched_count * 100.0 / self.total_tested
