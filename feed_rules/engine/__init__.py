"""Rule engine: validation, scope, conditions, evaluation and actions."""

from .actions import ActionExecutor
from .conditions import ConditionEvaluator, extract_field
from .errors import RuleConflictError, RuleEngineError, RuleValidationError
from .pipeline import EvaluationPipeline
from .scope import in_scope
from .validator import is_valid, validate

__all__ = [
    "ActionExecutor",
    "ConditionEvaluator",
    "extract_field",
    "RuleConflictError",
    "RuleEngineError",
    "RuleValidationError",
    "EvaluationPipeline",
    "in_scope",
    "is_valid",
    "validate",
]
