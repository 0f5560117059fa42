"""SQLite repositories for feed_rules.

Reference implementations of the repository interfaces on top of aiosqlite.
Each repository wraps one connection handed in by the caller.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import aiosqlite

from feed_rules.logging_config import get_logger
from feed_rules.models.schemas import (
    Action,
    AllFeeds,
    ApplyTags,
    Article,
    ArticleStatus,
    Condition,
    ConditionGroup,
    ConditionNode,
    Feed,
    HighlightArticle,
    LogicalOperator,
    MarkAsFavorite,
    MarkAsRead,
    MarkAsStarred,
    MoveToCategory,
    Notify,
    Rule,
    RuleActionType,
    RuleFieldTarget,
    RuleOperator,
    RuleScope,
    Scope,
    SpecificCategories,
    SpecificFeeds,
)

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _optional_bool(value: Any) -> Optional[bool]:
    return None if value is None else bool(value)


def _ids_to_json(ids: Sequence[int]) -> str:
    return json.dumps(list(ids))


def _ids_from_json(raw: Optional[str]) -> tuple:
    return tuple(json.loads(raw)) if raw else ()


# Condition trees are stored as JSON documents


def condition_to_dict(node: ConditionNode) -> Dict[str, Any]:
    """Serialize a condition leaf or group."""
    if isinstance(node, ConditionGroup):
        return {
            "operator": node.operator.value,
            "children": [condition_to_dict(child) for child in node.children],
        }

    return {
        "target": node.target.value,
        "operator": node.operator.value,
        "value": node.value,
        "regex_pattern": node.regex_pattern,
        "is_case_sensitive": node.is_case_sensitive,
        "negate": node.negate,
    }


def condition_from_dict(data: Dict[str, Any]) -> ConditionNode:
    """Rebuild a condition leaf or group from condition_to_dict output."""
    if "children" in data:
        return ConditionGroup(
            operator=LogicalOperator(data["operator"]),
            children=[condition_from_dict(child) for child in data["children"]],
        )

    return Condition(
        target=RuleFieldTarget(data["target"]),
        operator=RuleOperator(data["operator"]),
        value=data.get("value", ""),
        regex_pattern=data.get("regex_pattern", ""),
        is_case_sensitive=data.get("is_case_sensitive"),
        negate=data.get("negate", False),
    )


def _scope_from_row(row: aiosqlite.Row) -> Scope:
    scope = RuleScope(row["scope"])
    if scope == RuleScope.SPECIFIC_FEEDS:
        return SpecificFeeds(_ids_from_json(row["feed_ids"]))
    if scope == RuleScope.SPECIFIC_CATEGORIES:
        return SpecificCategories(_ids_from_json(row["category_ids"]))
    return AllFeeds()


def _action_from_row(row: aiosqlite.Row) -> Action:
    action_type = RuleActionType(row["action_type"])
    if action_type == RuleActionType.APPLY_TAGS:
        return ApplyTags(_ids_from_json(row["tag_ids"]))
    if action_type == RuleActionType.MOVE_TO_CATEGORY:
        return MoveToCategory(row["category_id"])
    if action_type == RuleActionType.HIGHLIGHT_ARTICLE:
        return HighlightArticle(row["highlight_color"])
    return {
        RuleActionType.MARK_AS_READ: MarkAsRead,
        RuleActionType.MARK_AS_STARRED: MarkAsStarred,
        RuleActionType.MARK_AS_FAVORITE: MarkAsFavorite,
        RuleActionType.NOTIFY: Notify,
    }[action_type]()


def _row_to_rule(row: aiosqlite.Row) -> Rule:
    conditions = None
    if row["conditions"]:
        conditions = condition_from_dict(json.loads(row["conditions"]))

    return Rule(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        condition=Condition(
            target=RuleFieldTarget(row["target"]),
            operator=RuleOperator(row["operator"]),
            value=row["value"],
            regex_pattern=row["regex_pattern"],
            is_case_sensitive=_optional_bool(row["is_case_sensitive"]),
        ),
        scope=_scope_from_row(row),
        action=_action_from_row(row),
        is_enabled=bool(row["is_enabled"]),
        priority=row["priority"],
        stop_on_match=bool(row["stop_on_match"]),
        conditions=conditions,
        match_count=row["match_count"],
        created_at=_from_iso(row["created_at"]),
        last_modified=_from_iso(row["last_modified"]),
        last_match_date=_from_iso(row["last_match_date"]),
    )


def _rule_definition_columns(rule: Rule) -> Dict[str, Any]:
    """Columns describing what a rule does; statistics are left out."""
    scope, action = rule.scope, rule.action

    return {
        "name": rule.name,
        "description": rule.description,
        "target": rule.condition.target.value,
        "operator": rule.condition.operator.value,
        "value": rule.condition.value,
        "regex_pattern": rule.condition.regex_pattern,
        "is_case_sensitive": rule.condition.is_case_sensitive,
        "is_enabled": rule.is_enabled,
        "priority": rule.priority,
        "action_type": action.kind.value,
        "scope": scope.kind.value,
        "feed_ids": _ids_to_json(scope.feed_ids) if isinstance(scope, SpecificFeeds) else None,
        "category_ids": (
            _ids_to_json(scope.category_ids)
            if isinstance(scope, SpecificCategories)
            else None
        ),
        "tag_ids": _ids_to_json(action.tag_ids) if isinstance(action, ApplyTags) else None,
        "category_id": action.category_id if isinstance(action, MoveToCategory) else None,
        "highlight_color": action.color if isinstance(action, HighlightArticle) else None,
        "stop_on_match": rule.stop_on_match,
        "conditions": (
            json.dumps(condition_to_dict(rule.conditions))
            if rule.conditions is not None
            else None
        ),
        "last_modified": _to_iso(rule.last_modified),
    }


class SqliteRuleRepository:
    """Rule store backed by the rules table."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def get_by_id(self, rule_id: int) -> Optional[Rule]:
        cursor = await self._db.execute("SELECT * FROM rules WHERE id = ?", (rule_id,))
        row = await cursor.fetchone()

        if row is None:
            return None

        return _row_to_rule(row)

    async def get_all(self) -> List[Rule]:
        cursor = await self._db.execute("SELECT * FROM rules ORDER BY priority, id")
        return [_row_to_rule(row) async for row in cursor]

    async def get_active(self) -> List[Rule]:
        cursor = await self._db.execute(
            "SELECT * FROM rules WHERE is_enabled = 1 ORDER BY priority, id"
        )
        rules = [_row_to_rule(row) async for row in cursor]
        logger.debug(f"Retrieved {len(rules)} active rules")
        return rules

    async def exists_by_name(self, name: str) -> bool:
        cursor = await self._db.execute("SELECT 1 FROM rules WHERE name = ?", (name,))
        return await cursor.fetchone() is not None

    async def insert(self, rule: Rule) -> Rule:
        """Insert a rule and set its id.

        Raises:
            aiosqlite.IntegrityError: If the name is already taken
        """
        columns = _rule_definition_columns(rule)
        columns.update({
            "match_count": rule.match_count,
            "created_at": _to_iso(rule.created_at),
            "last_match_date": _to_iso(rule.last_match_date),
        })

        names = ", ".join(columns)
        placeholders = ", ".join("?" * len(columns))
        cursor = await self._db.execute(
            f"INSERT INTO rules ({names}) VALUES ({placeholders})",
            list(columns.values()),
        )
        await self._db.commit()

        rule.id = cursor.lastrowid
        return rule

    async def update(self, rule: Rule) -> bool:
        """Rewrite a rule's definition, leaving its statistics alone."""
        columns = _rule_definition_columns(rule)
        assignments = ", ".join(f"{name} = ?" for name in columns)

        cursor = await self._db.execute(
            f"UPDATE rules SET {assignments} WHERE id = ?",
            list(columns.values()) + [rule.id],
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def delete(self, rule_id: int) -> bool:
        cursor = await self._db.execute("DELETE FROM rules WHERE id = ?", (rule_id,))
        await self._db.commit()
        return cursor.rowcount > 0

    async def increment_match_count(self, rule_id: int) -> bool:
        # Single statement so concurrent increments never lose a count
        now = _to_iso(_now())
        cursor = await self._db.execute(
            """
            UPDATE rules
            SET match_count = match_count + 1, last_match_date = ?, last_modified = ?
            WHERE id = ?
            """,
            (now, now, rule_id),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def get_total_match_count(self) -> int:
        cursor = await self._db.execute(
            "SELECT COALESCE(SUM(match_count), 0) AS total FROM rules"
        )
        row = await cursor.fetchone()
        return row["total"]

    async def get_top_by_match_count(self, limit: int = 10) -> List[Rule]:
        cursor = await self._db.execute(
            "SELECT * FROM rules ORDER BY match_count DESC, name LIMIT ?",
            (limit,),
        )
        return [_row_to_rule(row) async for row in cursor]

    async def toggle_enabled(self, rule_id: int) -> bool:
        cursor = await self._db.execute(
            "UPDATE rules SET is_enabled = NOT is_enabled, last_modified = ? WHERE id = ?",
            (_to_iso(_now()), rule_id),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def reset_statistics(self, rule_id: int) -> bool:
        cursor = await self._db.execute(
            """
            UPDATE rules
            SET match_count = 0, last_match_date = NULL, last_modified = ?
            WHERE id = ?
            """,
            (_to_iso(_now()), rule_id),
        )
        await self._db.commit()
        return cursor.rowcount > 0


def _row_to_article(row: aiosqlite.Row) -> Article:
    return Article(
        id=row["id"],
        feed_id=row["feed_id"],
        title=row["title"],
        content=row["content"],
        summary=row["summary"],
        author=row["author"],
        categories=row["categories"],
        link=row["link"],
        published_date=_from_iso(row["published_date"]),
        status=ArticleStatus(row["status"]),
        is_starred=bool(row["is_starred"]),
        is_favorite=bool(row["is_favorite"]),
        highlight_color=row["highlight_color"],
    )


class SqliteArticleRepository:
    """Article store backed by the articles table."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def insert(self, article: Article) -> Article:
        cursor = await self._db.execute(
            """
            INSERT INTO articles (
                id, feed_id, title, content, summary, author, categories, link,
                published_date, status, is_starred, is_favorite, highlight_color
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                article.id,
                article.feed_id,
                article.title,
                article.content,
                article.summary,
                article.author,
                article.categories,
                article.link,
                _to_iso(article.published_date),
                article.status.value,
                article.is_starred,
                article.is_favorite,
                article.highlight_color,
            ),
        )
        await self._db.commit()

        article.id = cursor.lastrowid
        return article

    async def get_by_id(self, article_id: int) -> Optional[Article]:
        cursor = await self._db.execute("SELECT * FROM articles WHERE id = ?", (article_id,))
        row = await cursor.fetchone()

        if row is None:
            return None

        return _row_to_article(row)

    async def update(self, article: Article) -> bool:
        """Persist the mutable state of an article."""
        cursor = await self._db.execute(
            """
            UPDATE articles
            SET status = ?, is_starred = ?, is_favorite = ?, highlight_color = ?
            WHERE id = ?
            """,
            (
                article.status.value,
                article.is_starred,
                article.is_favorite,
                article.highlight_color,
                article.id,
            ),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    async def list_unread(
        self, feed_id: Optional[int] = None, limit: int = 500
    ) -> List[Article]:
        """List unread articles, oldest first.

        Args:
            feed_id: Optional feed to restrict to
            limit: Maximum number of articles to return (default: 500)
        """
        query = "SELECT * FROM articles WHERE status = ?"
        params: List = [ArticleStatus.UNREAD.value]

        if feed_id is not None:
            query += " AND feed_id = ?"
            params.append(feed_id)

        query += " ORDER BY id LIMIT ?"
        params.append(limit)

        cursor = await self._db.execute(query, params)
        return [_row_to_article(row) async for row in cursor]


class SqliteFeedRepository:
    """Feed store backed by the feeds table."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def insert(self, feed: Feed) -> Feed:
        cursor = await self._db.execute(
            "INSERT INTO feeds (id, title, url, category_id) VALUES (?, ?, ?, ?)",
            (feed.id, feed.title, feed.url, feed.category_id),
        )
        await self._db.commit()

        feed.id = cursor.lastrowid
        return feed

    async def get_by_id(self, feed_id: int) -> Optional[Feed]:
        cursor = await self._db.execute("SELECT * FROM feeds WHERE id = ?", (feed_id,))
        row = await cursor.fetchone()

        if row is None:
            return None

        return Feed(
            id=row["id"],
            title=row["title"],
            url=row["url"],
            category_id=row["category_id"],
        )

    async def update(self, feed: Feed) -> bool:
        cursor = await self._db.execute(
            "UPDATE feeds SET title = ?, url = ?, category_id = ? WHERE id = ?",
            (feed.title, feed.url, feed.category_id, feed.id),
        )
        await self._db.commit()
        return cursor.rowcount > 0


class SqliteTagAssociations:
    """Article/tag links in the article_tags table."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def apply(self, tag_ids: Sequence[int], article_id: int) -> None:
        await self._db.executemany(
            "INSERT OR IGNORE INTO article_tags (article_id, tag_id) VALUES (?, ?)",
            [(article_id, tag_id) for tag_id in tag_ids],
        )
        await self._db.commit()

    async def get_tag_ids(self, article_id: int) -> List[int]:
        cursor = await self._db.execute(
            "SELECT tag_id FROM article_tags WHERE article_id = ? ORDER BY tag_id",
            (article_id,),
        )
        return [row["tag_id"] async for row in cursor]
