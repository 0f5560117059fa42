"""Database storage for feed_rules.

This module provides the async SQLite connection and schema backing the
reference repositories.
Database location: ~/.feed_rules/feed_rules.db (or FEED_RULES_DB_PATH env var)
"""

from pathlib import Path
from typing import Optional, Union

import aiosqlite

from feed_rules.config import get_config


# Singleton connection
_db_connection: Optional[aiosqlite.Connection] = None


async def open_database(db_path: Union[str, Path]) -> aiosqlite.Connection:
    """Open a connection and make sure the schema exists.

    Args:
        db_path: SQLite file path, or ":memory:"

    Returns:
        Connection using aiosqlite.Row rows
    """
    if str(db_path) != ":memory:":
        # Ensure directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    await init_database(db)
    return db


async def get_database() -> aiosqlite.Connection:
    """Get or create a singleton database connection.

    Returns:
        Active database connection
    """
    global _db_connection

    if _db_connection is None:
        _db_connection = await open_database(get_config().db_path)

    return _db_connection


async def init_database(db: Optional[aiosqlite.Connection] = None) -> None:
    """Initialize database tables if they don't exist.

    Args:
        db: Optional database connection (uses singleton if not provided)
    """
    if db is None:
        db = await get_database()

    await db.execute("""
        CREATE TABLE IF NOT EXISTS feeds (
            id INTEGER PRIMARY KEY,
            title TEXT NOT NULL,
            url TEXT NOT NULL UNIQUE,
            category_id INTEGER
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS articles (
            id INTEGER PRIMARY KEY,
            feed_id INTEGER NOT NULL,
            title TEXT,
            content TEXT,
            summary TEXT,
            author TEXT,
            categories TEXT,
            link TEXT,
            published_date TIMESTAMP,
            status TEXT NOT NULL DEFAULT 'Unread',
            is_starred BOOLEAN DEFAULT FALSE,
            is_favorite BOOLEAN DEFAULT FALSE,
            highlight_color TEXT,
            FOREIGN KEY (feed_id) REFERENCES feeds(id) ON DELETE CASCADE
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS rules (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL DEFAULT '',
            target TEXT NOT NULL,
            operator TEXT NOT NULL,
            value TEXT NOT NULL DEFAULT '',
            regex_pattern TEXT NOT NULL DEFAULT '',
            is_case_sensitive BOOLEAN,
            is_enabled BOOLEAN DEFAULT TRUE,
            priority INTEGER NOT NULL DEFAULT 100,
            action_type TEXT NOT NULL,
            scope TEXT NOT NULL,
            feed_ids TEXT,
            category_ids TEXT,
            tag_ids TEXT,
            category_id INTEGER,
            highlight_color TEXT,
            stop_on_match BOOLEAN DEFAULT FALSE,
            conditions TEXT,
            match_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP,
            last_modified TIMESTAMP,
            last_match_date TIMESTAMP
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS article_tags (
            article_id INTEGER NOT NULL,
            tag_id INTEGER NOT NULL,
            PRIMARY KEY (article_id, tag_id),
            FOREIGN KEY (article_id) REFERENCES articles(id) ON DELETE CASCADE
        )
    """)

    # Create index for faster lookups
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_articles_feed_id ON articles(feed_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(status)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_rules_is_enabled ON rules(is_enabled)
    """)

    await db.commit()


async def close_database() -> None:
    """Close the database connection."""
    global _db_connection

    if _db_connection is not None:
        await _db_connection.close()
        _db_connection = None
