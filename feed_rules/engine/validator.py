"""Rule validator.

Structural validation of a rule definition before it is persisted. The
validator is also the ingestion boundary: JSON id lists are parsed here,
once, into the typed scope and action variants carried by a Rule.
"""

import json
from typing import Optional, Tuple

import regex

from feed_rules.engine.errors import RuleValidationError
from feed_rules.logging_config import get_logger
from feed_rules.models.schemas import (
    Action,
    AllFeeds,
    ApplyTags,
    Condition,
    ConditionGroup,
    HighlightArticle,
    MarkAsFavorite,
    MarkAsRead,
    MarkAsStarred,
    MoveToCategory,
    Notify,
    Rule,
    RuleActionType,
    RuleDraft,
    RuleOperator,
    RuleScope,
    Scope,
    SpecificCategories,
    SpecificFeeds,
)

MAX_NAME_LENGTH = 200
DEFAULT_PRIORITY = 100

# Draft attribute -> label used in messages
_ID_LIST_LABELS = {
    "feed_ids": "FeedIds",
    "category_ids": "CategoryIds",
    "tag_ids": "TagIds",
}

logger = get_logger(__name__)


def normalize_priority(priority: int) -> int:
    """Map non-positive priorities to the default."""
    return priority if priority > 0 else DEFAULT_PRIORITY


def parse_id_list(raw: Optional[str], field: str) -> Tuple[int, ...]:
    """Decode a JSON array of ids into an ordered set.

    Args:
        raw: JSON text such as "[1, 2, 3]"
        field: Draft attribute name (feed_ids, category_ids or tag_ids)

    Returns:
        Tuple of unique positive ids in first-seen order

    Raises:
        RuleValidationError: If the text is blank, not an int array, or
            holds non-positive ids
    """
    label = _ID_LIST_LABELS[field]

    if raw is None or not raw.strip():
        raise RuleValidationError(field, f"{label} are required")

    try:
        decoded = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise RuleValidationError(field, f"{label} contains invalid JSON") from e

    # bool is an int subclass; true/false are not ids
    if not isinstance(decoded, list) or any(
        isinstance(item, bool) or not isinstance(item, int) for item in decoded
    ):
        raise RuleValidationError(field, f"{label} contains invalid JSON")

    if any(item <= 0 for item in decoded):
        raise RuleValidationError(field, f"{label} must contain positive ids")

    return tuple(dict.fromkeys(decoded))


def validate(draft: RuleDraft) -> Rule:
    """Validate a rule draft and build the typed Rule.

    Args:
        draft: Rule definition to check

    Returns:
        Rule with parsed scope, action and conditions. Priority is
        normalised; id and statistics are left for the caller to fill.

    Raises:
        ValueError: If draft is None
        RuleValidationError: On the first failing check
    """
    if draft is None:
        raise ValueError("rule is required")

    _check_name(draft.name)
    scope = _build_scope(draft)
    action = _build_action(draft)

    condition = Condition(
        target=draft.target,
        operator=draft.operator,
        value=draft.value or "",
        regex_pattern=draft.regex_pattern or "",
        is_case_sensitive=draft.is_case_sensitive,
    )

    conditions = None
    if draft.uses_advanced_conditions:
        conditions = _check_condition_tree(draft.conditions)
    else:
        _check_condition(condition, "regex_pattern", "value")

    return Rule(
        id=draft.id,
        name=draft.name,
        description=draft.description or "",
        condition=condition,
        scope=scope,
        action=action,
        is_enabled=draft.is_enabled,
        priority=normalize_priority(draft.priority),
        stop_on_match=draft.stop_on_match,
        conditions=conditions,
    )


def is_valid(draft: Optional[RuleDraft]) -> bool:
    """Structural check only; a missing draft is simply invalid."""
    if draft is None:
        return False

    try:
        validate(draft)
    except RuleValidationError as e:
        logger.debug(f"Rule '{draft.name}' is invalid: {e}")
        return False

    return True


def _check_name(name: Optional[str]) -> None:
    if name is None or not name.strip():
        raise RuleValidationError("name", "Rule name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise RuleValidationError(
            "name", f"Rule name cannot exceed {MAX_NAME_LENGTH} characters"
        )


def _build_scope(draft: RuleDraft) -> Scope:
    if draft.scope == RuleScope.SPECIFIC_FEEDS:
        return SpecificFeeds(parse_id_list(draft.feed_ids, "feed_ids"))
    if draft.scope == RuleScope.SPECIFIC_CATEGORIES:
        return SpecificCategories(parse_id_list(draft.category_ids, "category_ids"))
    if draft.scope == RuleScope.ALL_FEEDS:
        return AllFeeds()
    raise RuleValidationError("scope", f"Unknown scope {draft.scope!r}")


def _build_action(draft: RuleDraft) -> Action:
    action_type = draft.action_type

    if action_type == RuleActionType.APPLY_TAGS:
        return ApplyTags(parse_id_list(draft.tag_ids, "tag_ids"))

    if action_type == RuleActionType.MOVE_TO_CATEGORY:
        if draft.category_id is None:
            raise RuleValidationError(
                "category_id", "CategoryId is required when action is MoveToCategory"
            )
        return MoveToCategory(draft.category_id)

    if action_type == RuleActionType.HIGHLIGHT_ARTICLE:
        if draft.highlight_color is None or not draft.highlight_color.strip():
            raise RuleValidationError(
                "highlight_color",
                "HighlightColor is required when action is HighlightArticle",
            )
        return HighlightArticle(draft.highlight_color)

    simple = {
        RuleActionType.MARK_AS_READ: MarkAsRead,
        RuleActionType.MARK_AS_STARRED: MarkAsStarred,
        RuleActionType.MARK_AS_FAVORITE: MarkAsFavorite,
        RuleActionType.NOTIFY: Notify,
    }
    if action_type in simple:
        return simple[action_type]()

    raise RuleValidationError("action_type", f"Unknown action type {action_type!r}")


def _check_condition(
    condition: Condition,
    pattern_field: str,
    value_field: str,
    regex_needs_value: bool = True,
) -> None:
    is_regex = condition.operator == RuleOperator.REGEX

    if is_regex:
        if not condition.regex_pattern.strip():
            raise RuleValidationError(
                pattern_field, "RegexPattern is required when operator is Regex"
            )
        try:
            regex.compile(condition.regex_pattern)
        except regex.error as e:
            raise RuleValidationError(
                pattern_field, f"RegexPattern is not a valid regular expression: {e}"
            ) from e

    needs_value = condition.operator.requires_value and (regex_needs_value or not is_regex)
    if needs_value and not condition.value.strip():
        raise RuleValidationError(
            value_field, f"Value is required for operator {condition.operator.value}"
        )


def _check_condition_tree(group: Optional[ConditionGroup]) -> ConditionGroup:
    if group is None or not isinstance(group, ConditionGroup):
        raise RuleValidationError(
            "conditions", "Conditions are required when using advanced conditions"
        )

    leaves = 0
    stack = [group]
    while stack:
        node = stack.pop()
        for child in node.children:
            if isinstance(child, ConditionGroup):
                stack.append(child)
            else:
                leaves += 1
                _check_condition(child, "conditions", "conditions", regex_needs_value=False)

    if leaves == 0:
        raise RuleValidationError(
            "conditions", "Conditions are required when using advanced conditions"
        )

    return group
