"""Shared fixtures for feed_rules tests."""

from unittest.mock import AsyncMock

import aiosqlite
import pytest

from feed_rules.models.schemas import (
    AllFeeds,
    Article,
    Condition,
    Feed,
    MarkAsRead,
    Rule,
    RuleFieldTarget,
    RuleOperator,
)
from feed_rules.storage.database import init_database


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def in_memory_db():
    """Create an in-memory database for testing."""
    db = await aiosqlite.connect(":memory:")
    db.row_factory = aiosqlite.Row
    await init_database(db)

    yield db

    await db.close()


@pytest.fixture
def rule_repo():
    """Rule repository mock with no active rules by default."""
    repo = AsyncMock()
    repo.get_active.return_value = []
    repo.exists_by_name.return_value = False
    repo.increment_match_count.return_value = True
    repo.update.return_value = True
    return repo


@pytest.fixture
def feed_repo():
    """Feed repository mock resolving every feed to feed 1 in category 10."""
    repo = AsyncMock()
    repo.get_by_id.return_value = Feed(id=1, title="Tech", url="https://tech.example.com/feed", category_id=10)
    return repo


@pytest.fixture
def article_repo():
    repo = AsyncMock()
    repo.update.return_value = True
    return repo


def make_rule(
    rule_id: int = 1,
    name: str = "AI rule",
    value: str = "AI",
    operator: RuleOperator = RuleOperator.CONTAINS,
    target: RuleFieldTarget = RuleFieldTarget.TITLE,
    **kwargs,
) -> Rule:
    """Build a validated-looking rule for engine tests."""
    kwargs.setdefault("scope", AllFeeds())
    kwargs.setdefault("action", MarkAsRead())
    return Rule(
        id=rule_id,
        name=name,
        condition=Condition(target=target, operator=operator, value=value),
        **kwargs,
    )


def make_article(article_id: int = 100, feed_id: int = 1, **kwargs) -> Article:
    kwargs.setdefault("title", "AI News")
    return Article(id=article_id, feed_id=feed_id, **kwargs)
