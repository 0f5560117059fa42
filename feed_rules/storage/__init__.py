"""Storage layer for feed_rules."""

from .database import (
    get_database,
    open_database,
    init_database,
    close_database,
)
from .repositories import (
    SqliteRuleRepository,
    SqliteArticleRepository,
    SqliteFeedRepository,
    SqliteTagAssociations,
)

__all__ = [
    "get_database",
    "open_database",
    "init_database",
    "close_database",
    "SqliteRuleRepository",
    "SqliteArticleRepository",
    "SqliteFeedRepository",
    "SqliteTagAssociations",
]
