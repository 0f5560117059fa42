"""feed_rules command line.

Operator commands for inspecting and maintaining rules stored in the SQLite
database, and for running the rules over unread articles after a refresh.
"""

import asyncio
from datetime import timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Tuple

import click

from feed_rules.config import load_config
from feed_rules.logging_config import setup_logging
from feed_rules.models.schemas import Rule
from feed_rules.services.rule_service import RuleService
from feed_rules.storage.database import open_database
from feed_rules.storage.repositories import (
    SqliteArticleRepository,
    SqliteFeedRepository,
    SqliteRuleRepository,
    SqliteTagAssociations,
)


def _run(ctx: click.Context, action: Callable[[RuleService], Awaitable[Any]]) -> Any:
    """Open the database, build a RuleService and run one async action on it."""
    config = ctx.obj["config"]

    async def runner():
        db = await open_database(config.db_path)
        try:
            service = RuleService(
                SqliteRuleRepository(db),
                SqliteArticleRepository(db),
                SqliteFeedRepository(db),
                SqliteTagAssociations(db),
                config=config,
            )
            return await action(service)
        finally:
            await db.close()

    return asyncio.run(runner())


def _describe(rule: Rule) -> str:
    state = "enabled" if rule.is_enabled else "disabled"
    return (
        f"[{rule.id}] {rule.name} ({state}, priority {rule.priority}, "
        f"{rule.scope.kind.value} -> {rule.action.kind.value}, {rule.match_count} matches)"
    )


def _format_age(age: timedelta) -> str:
    if age.days:
        return f"{age.days}d"
    hours, seconds = divmod(age.seconds, 3600)
    if hours:
        return f"{hours}h"
    return f"{seconds // 60}m"


def _require_rule(rule: Optional[Rule], rule_id: int) -> Rule:
    if rule is None:
        raise click.ClickException(f"Rule with id {rule_id} not found")
    return rule


@click.group()
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database file (defaults to FEED_RULES_DB_PATH or ~/.feed_rules/feed_rules.db)",
)
@click.pass_context
def main(ctx: click.Context, db_path: Optional[Path]) -> None:
    """Manage feed rules and apply them to articles."""
    config = load_config()
    if db_path is not None:
        config = config.model_copy(update={"db_path": db_path})

    setup_logging(config)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command("list")
@click.option("--active", is_flag=True, help="Only show enabled rules")
@click.pass_context
def list_rules(ctx: click.Context, active: bool) -> None:
    """List rules in evaluation order."""
    rules = _run(
        ctx,
        lambda service: service.get_active_rules() if active else service.get_all_rules(),
    )

    if not rules:
        click.echo("No rules defined")
        return

    for rule in rules:
        click.echo(_describe(rule))


@main.command()
@click.option("--limit", type=int, default=None, help="Number of top rules to show")
@click.pass_context
def stats(ctx: click.Context, limit: Optional[int]) -> None:
    """Show match statistics."""

    async def action(service: RuleService):
        total = await service.get_total_match_count()
        top = await service.get_top_rules_by_match_count(limit)
        return total, top

    total, top = _run(ctx, action)

    click.echo(f"Total matches: {total}")
    for rule in top:
        click.echo(f"  {rule.match_count:>6}  {rule.name}")


@main.command("rule-stats")
@click.argument("rule_id", type=int)
@click.pass_context
def rule_stats(ctx: click.Context, rule_id: int) -> None:
    """Show match statistics for one rule."""
    if rule_id <= 0:
        raise click.BadParameter("must be greater than 0", param_hint="RULE_ID")

    stats = _run(ctx, lambda service: service.get_rule_statistics(rule_id))
    if stats is None:
        raise click.ClickException(f"Rule with id {rule_id} not found")

    click.echo(f"Rule '{stats.name}' ({'enabled' if stats.is_enabled else 'disabled'})")
    click.echo(f"  Matches: {stats.match_count}")
    click.echo(f"  Average per day: {stats.average_matches_per_day:.2f}")
    if stats.time_since_last_match is None:
        click.echo("  Last match: never")
    else:
        click.echo(f"  Last match: {_format_age(stats.time_since_last_match)} ago")


@main.command()
@click.argument("rule_id", type=int)
@click.pass_context
def toggle(ctx: click.Context, rule_id: int) -> None:
    """Enable or disable a rule."""

    async def action(service: RuleService):
        if not await service.toggle_rule(rule_id):
            return None
        return await service.get_rule(rule_id)

    rule = _require_rule(_run(ctx, action), rule_id)
    click.echo(f"Rule '{rule.name}' is now {'enabled' if rule.is_enabled else 'disabled'}")


@main.command("reset-stats")
@click.argument("rule_id", type=int)
@click.pass_context
def reset_stats(ctx: click.Context, rule_id: int) -> None:
    """Reset a rule's match statistics."""
    if not _run(ctx, lambda service: service.reset_rule_statistics(rule_id)):
        raise click.ClickException(f"Rule with id {rule_id} not found")
    click.echo(f"Statistics reset for rule {rule_id}")


@main.command()
@click.argument("rule_id", type=int)
@click.confirmation_option(prompt="Delete this rule?")
@click.pass_context
def delete(ctx: click.Context, rule_id: int) -> None:
    """Delete a rule."""
    if not _run(ctx, lambda service: service.delete_rule(rule_id)):
        raise click.ClickException(f"Rule with id {rule_id} not found")
    click.echo(f"Deleted rule {rule_id}")


@main.command()
@click.argument("rule_id", type=int)
@click.argument("text")
@click.pass_context
def test(ctx: click.Context, rule_id: int, text: str) -> None:
    """Dry-run a rule's condition against TEXT."""

    async def action(service: RuleService):
        rule = _require_rule(await service.get_rule(rule_id), rule_id)
        return rule, service.test_rule(rule, text)

    rule, matched = _run(ctx, action)
    click.echo(f"Rule '{rule.name}' {'matches' if matched else 'does not match'}")


@main.command("try")
@click.argument("rule_id", type=int)
@click.argument("article_ids", type=int, nargs=-1, required=True)
@click.pass_context
def try_rule(ctx: click.Context, rule_id: int, article_ids: Tuple[int, ...]) -> None:
    """Dry-run a rule's condition against stored articles."""

    async def action(service: RuleService):
        _require_rule(await service.get_rule(rule_id), rule_id)
        return await service.test_rule_on_articles(rule_id, list(article_ids))

    result = _run(ctx, action)

    click.echo(
        f"Rule '{result.rule_name}' matched {result.matched_count} of "
        f"{result.total_tested} articles ({result.match_percentage:.1f}%)"
    )
    if result.matched_article_ids:
        click.echo("Matched: " + ", ".join(str(i) for i in result.matched_article_ids))


@main.command()
@click.option("--feed-id", type=int, default=None, help="Only process articles of this feed")
@click.option("--limit", type=int, default=500, help="Maximum number of articles to process")
@click.pass_context
def apply(ctx: click.Context, feed_id: Optional[int], limit: int) -> None:
    """Run the rules over unread articles and apply their actions."""

    async def action(service: RuleService):
        articles = await service.get_unread_articles(feed_id=feed_id, limit=limit)
        results = []
        for article in articles:
            matched = await service.process_article(article)
            results.append((article, matched))
        return results

    results = _run(ctx, action)

    matched_total = 0
    for article, matched in results:
        if matched:
            matched_total += len(matched)
            names = ", ".join(rule.name for rule in matched)
            click.echo(f"Article {article.id}: {names}")

    click.echo(f"Processed {len(results)} articles, {matched_total} rule matches")


if __name__ == "__main__":
    main()
