"""Repository interfaces consumed by the rule engine.

The engine never owns storage; it reads and requests mutations through these
protocols, which are constructor-injected into the pipeline, the executor and
the rule service.
"""

from typing import List, Optional, Protocol, Sequence

from feed_rules.models.schemas import Article, Feed, Rule


class RuleRepository(Protocol):
    async def get_by_id(self, rule_id: int) -> Optional[Rule]: ...

    async def get_all(self) -> List[Rule]: ...

    async def get_active(self) -> List[Rule]:
        """Enabled rules only."""
        ...

    async def exists_by_name(self, name: str) -> bool: ...

    async def insert(self, rule: Rule) -> Rule: ...

    async def update(self, rule: Rule) -> bool: ...

    async def delete(self, rule_id: int) -> bool: ...

    async def increment_match_count(self, rule_id: int) -> bool:
        """Atomically add one match and stamp last_match_date/last_modified."""
        ...

    async def get_total_match_count(self) -> int: ...

    async def get_top_by_match_count(self, limit: int = 10) -> List[Rule]: ...

    async def toggle_enabled(self, rule_id: int) -> bool: ...

    async def reset_statistics(self, rule_id: int) -> bool: ...


class ArticleRepository(Protocol):
    async def get_by_id(self, article_id: int) -> Optional[Article]: ...

    async def update(self, article: Article) -> bool: ...

    async def list_unread(
        self, feed_id: Optional[int] = None, limit: int = 500
    ) -> List[Article]: ...


class FeedRepository(Protocol):
    async def get_by_id(self, feed_id: int) -> Optional[Feed]: ...

    async def update(self, feed: Feed) -> bool: ...


class TagAssociations(Protocol):
    async def apply(self, tag_ids: Sequence[int], article_id: int) -> None: ...


class Notifier(Protocol):
    async def notify(self, rule: Rule, article: Article) -> None: ...
