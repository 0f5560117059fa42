"""Exceptions raised by the rule engine."""


class RuleEngineError(Exception):
    """Base exception for feed_rules."""


class RuleValidationError(RuleEngineError):
    """A rule definition failed structural validation.

    Attributes:
        field: Name of the offending rule field
        message: Human readable reason
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class RuleConflictError(RuleEngineError):
    """A rule with the same name already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A rule with name '{name}' already exists")
