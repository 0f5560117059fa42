"""Unit tests for rule validation.

Tests for structural checks and the parsing of JSON id lists into typed
scope and action variants.
"""

import pytest

from feed_rules.engine.errors import RuleValidationError
from feed_rules.engine.validator import is_valid, parse_id_list, validate
from feed_rules.models.schemas import (
    AllFeeds,
    ApplyTags,
    Condition,
    ConditionGroup,
    HighlightArticle,
    LogicalOperator,
    MarkAsRead,
    MoveToCategory,
    Notify,
    RuleActionType,
    RuleDraft,
    RuleOperator,
    RuleScope,
    SpecificCategories,
    SpecificFeeds,
)


def draft(**kwargs) -> RuleDraft:
    kwargs.setdefault("name", "AI articles")
    kwargs.setdefault("value", "AI")
    return RuleDraft(**kwargs)


class TestIdListParsing:
    """Tests for JSON id list decoding."""

    def test_parses_int_array(self):
        """Test a plain array becomes a tuple."""
        assert parse_id_list("[3, 1, 2]", "feed_ids") == (3, 1, 2)

    def test_drops_duplicates_keeping_order(self):
        """Test the result is an ordered set."""
        assert parse_id_list("[2, 1, 2, 3, 1]", "feed_ids") == (2, 1, 3)

    def test_empty_array_is_allowed(self):
        """Test an explicit empty array parses to no ids."""
        assert parse_id_list("[]", "tag_ids") == ()

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank_is_required_error(self, raw):
        """Test missing text reports the field as required."""
        with pytest.raises(RuleValidationError) as exc_info:
            parse_id_list(raw, "feed_ids")

        assert exc_info.value.field == "feed_ids"
        assert exc_info.value.message == "FeedIds are required"

    @pytest.mark.parametrize("raw", ["[1, 2", "not json", '{"a": 1}', '["1"]', "[1.5]", "[true]", "3"])
    def test_malformed_is_invalid_json_error(self, raw):
        """Test anything but an array of ints is rejected."""
        with pytest.raises(RuleValidationError) as exc_info:
            parse_id_list(raw, "category_ids")

        assert exc_info.value.field == "category_ids"
        assert exc_info.value.message == "CategoryIds contains invalid JSON"

    def test_non_positive_ids_rejected(self):
        """Test ids must be positive."""
        with pytest.raises(RuleValidationError, match="TagIds must contain positive ids"):
            parse_id_list("[1, 0]", "tag_ids")


class TestValidate:
    """Tests for validate()."""

    def test_minimal_rule(self):
        """Test a simple AllFeeds/Notify rule validates."""
        rule = validate(draft())

        assert rule.name == "AI articles"
        assert rule.scope == AllFeeds()
        assert rule.action == Notify()
        assert rule.condition == Condition(value="AI")
        assert rule.conditions is None
        assert rule.uses_advanced_conditions is False

    def test_none_is_precondition_failure(self):
        """Test a missing draft raises ValueError, not a validation error."""
        with pytest.raises(ValueError):
            validate(None)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name(self, name):
        """Test the name must not be blank."""
        with pytest.raises(RuleValidationError) as exc_info:
            validate(draft(name=name))

        assert exc_info.value.field == "name"

    def test_name_length_limit(self):
        """Test names up to 200 characters pass and longer ones fail."""
        validate(draft(name="x" * 200))

        with pytest.raises(RuleValidationError, match="cannot exceed 200"):
            validate(draft(name="x" * 201))

    def test_specific_feeds_scope(self):
        """Test feed ids are parsed into the scope variant."""
        rule = validate(draft(scope=RuleScope.SPECIFIC_FEEDS, feed_ids="[1, 2]"))

        assert rule.scope == SpecificFeeds((1, 2))

    def test_specific_feeds_requires_ids(self):
        """Test SpecificFeeds without ids fails."""
        with pytest.raises(RuleValidationError, match="FeedIds are required"):
            validate(draft(scope=RuleScope.SPECIFIC_FEEDS))

    def test_specific_categories_invalid_json(self):
        """Test SpecificCategories with malformed ids fails."""
        with pytest.raises(RuleValidationError, match="CategoryIds contains invalid JSON"):
            validate(draft(scope=RuleScope.SPECIFIC_CATEGORIES, category_ids="[1,"))

    def test_specific_categories_scope(self):
        """Test category ids are parsed into the scope variant."""
        rule = validate(draft(scope=RuleScope.SPECIFIC_CATEGORIES, category_ids="[7]"))

        assert rule.scope == SpecificCategories((7,))

    def test_id_lists_ignored_when_not_selected(self):
        """Test malformed id lists are irrelevant for AllFeeds scope and other actions."""
        rule = validate(draft(feed_ids="oops", category_ids="[", tag_ids="{}"))

        assert rule.scope == AllFeeds()

    def test_apply_tags_action(self):
        """Test tag ids are parsed into the action variant."""
        rule = validate(draft(action_type=RuleActionType.APPLY_TAGS, tag_ids="[5, 6]"))

        assert rule.action == ApplyTags((5, 6))

    def test_apply_tags_requires_ids(self):
        """Test ApplyTags without ids fails."""
        with pytest.raises(RuleValidationError, match="TagIds are required"):
            validate(draft(action_type=RuleActionType.APPLY_TAGS))

    def test_move_to_category_requires_category(self):
        """Test MoveToCategory needs a category id."""
        with pytest.raises(RuleValidationError) as exc_info:
            validate(draft(action_type=RuleActionType.MOVE_TO_CATEGORY))

        assert exc_info.value.field == "category_id"

        rule = validate(draft(action_type=RuleActionType.MOVE_TO_CATEGORY, category_id=4))
        assert rule.action == MoveToCategory(4)

    def test_highlight_requires_color(self):
        """Test HighlightArticle needs a non-blank colour."""
        with pytest.raises(RuleValidationError) as exc_info:
            validate(draft(action_type=RuleActionType.HIGHLIGHT_ARTICLE, highlight_color=" "))

        assert exc_info.value.field == "highlight_color"

        rule = validate(draft(action_type=RuleActionType.HIGHLIGHT_ARTICLE, highlight_color="#ff0"))
        assert rule.action == HighlightArticle("#ff0")

    def test_mark_as_read_action(self):
        """Test payload-free actions map to their variants."""
        rule = validate(draft(action_type=RuleActionType.MARK_AS_READ))

        assert rule.action == MarkAsRead()

    def test_regex_requires_pattern(self):
        """Test the Regex operator needs regex_pattern."""
        with pytest.raises(RuleValidationError) as exc_info:
            validate(draft(operator=RuleOperator.REGEX))

        assert exc_info.value.field == "regex_pattern"

    def test_regex_pattern_must_compile(self):
        """Test an unparsable regex pattern is rejected."""
        with pytest.raises(RuleValidationError, match="not a valid regular expression"):
            validate(draft(operator=RuleOperator.REGEX, regex_pattern="(unclosed"))

    def test_value_required_for_comparison_operators(self):
        """Test comparison operators need a value."""
        for operator in (RuleOperator.CONTAINS, RuleOperator.EQUALS, RuleOperator.REGEX):
            with pytest.raises(RuleValidationError) as exc_info:
                validate(draft(operator=operator, value="", regex_pattern="x"))

            assert exc_info.value.field == "value"

    @pytest.mark.parametrize("operator", [RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY])
    def test_blankness_operators_need_no_value(self, operator):
        """Test IsEmpty/IsNotEmpty ignore the value."""
        rule = validate(draft(operator=operator, value=""))

        assert rule.condition.operator == operator

    @pytest.mark.parametrize("priority", [0, -5])
    def test_non_positive_priority_normalized(self, priority):
        """Test priority <= 0 becomes 100."""
        assert validate(draft(priority=priority)).priority == 100

    def test_positive_priority_kept(self):
        """Test a positive priority is left alone."""
        assert validate(draft(priority=3)).priority == 3

    def test_advanced_conditions_skip_simple_checks(self):
        """Test advanced rules do not need a simple value or pattern."""
        tree = ConditionGroup(
            operator=LogicalOperator.OR,
            children=[Condition(value="AI"), Condition(value="ML")],
        )

        rule = validate(draft(
            value="",
            operator=RuleOperator.REGEX,
            uses_advanced_conditions=True,
            conditions=tree,
        ))

        assert rule.conditions is tree
        assert rule.uses_advanced_conditions is True

    def test_advanced_conditions_require_tree(self):
        """Test advanced rules need at least one leaf."""
        with pytest.raises(RuleValidationError) as exc_info:
            validate(draft(uses_advanced_conditions=True))
        assert exc_info.value.field == "conditions"

        with pytest.raises(RuleValidationError):
            validate(draft(uses_advanced_conditions=True, conditions=ConditionGroup()))

    def test_advanced_condition_leaves_are_checked(self):
        """Test each leaf of the tree is validated."""
        tree = ConditionGroup(children=[
            Condition(value="AI"),
            ConditionGroup(children=[Condition(operator=RuleOperator.REGEX)]),
        ])

        with pytest.raises(RuleValidationError, match="RegexPattern is required"):
            validate(draft(uses_advanced_conditions=True, conditions=tree))

    def test_tree_dropped_when_not_advanced(self):
        """Test a tree is ignored unless advanced conditions are on."""
        tree = ConditionGroup(children=[Condition(value="ML")])

        assert validate(draft(conditions=tree)).conditions is None


class TestIsValid:
    """Tests for the boolean structural check."""

    def test_none_is_false(self):
        """Test a missing draft is simply invalid."""
        assert is_valid(None) is False

    def test_valid_and_invalid(self):
        """Test is_valid mirrors validate without raising."""
        assert is_valid(draft()) is True
        assert is_valid(draft(name="")) is False
        assert is_valid(draft(scope=RuleScope.SPECIFIC_FEEDS, feed_ids="[x]")) is False

    def test_deeply_nested_id_list_is_false(self):
        """Test JSON too deep to decode is invalid rather than an error."""
        nested = draft(scope=RuleScope.SPECIFIC_FEEDS, feed_ids="[" * 100000)

        assert is_valid(nested) is False

        with pytest.raises(RuleValidationError) as exc_info:
            validate(nested)

        assert exc_info.value.message == "FeedIds contains invalid JSON"
